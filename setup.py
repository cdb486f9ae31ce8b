# setup.py
from setuptools import setup, find_packages

setup(
    name="phpctx",
    version="0.1.0",
    description="Completion context resolver for PHP buffers truncated at the cursor",
    packages=find_packages(include=["phpctx", "phpctx.*", "phpctx_lsp", "phpctx_lsp.*"]),
    python_requires=">=3.8",
    install_requires=[
        "pygls>=1.1,<2",
        "lsprotocol",
    ],
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    entry_points={
        "console_scripts": ["phpctx-ls=phpctx_lsp.server:main"],
    },
    zip_safe=False,
)
