import pytest

from phpctx.analysis.symbols import resolve_class_name
from phpctx.types.definitions import ClassDefinition


def _fqn(ref):
    return ref.fqn if ref is not None else None


# --- use imports ---

def test_use_imports(symbols_of):
    table = symbols_of("use App\\Models\\User;\nuse App\\Http\\Request as Req;\n")
    assert table.uses == {"User": "App\\Models\\User", "Req": "App\\Http\\Request"}


def test_use_last_declaration_wins(symbols_of):
    table = symbols_of("use App\\User;\nuse App\\Models\\User;\n")
    assert table.uses == {"User": "App\\Models\\User"}


def test_use_alias_collision_last_wins(symbols_of):
    table = symbols_of("use App\\User as Model;\nuse Illuminate\\Database\\Eloquent\\Model as Model;\n")
    assert table.resolve("Model").fqn == "Illuminate\\Database\\Eloquent\\Model"


def test_use_comma_list_and_leading_backslash(symbols_of):
    table = symbols_of("use \\App\\User, App\\Post as P;\n")
    assert table.uses == {"User": "App\\User", "P": "App\\Post"}


def test_group_use(symbols_of):
    table = symbols_of("use App\\{Models\\User, Http\\Request as Req};\n")
    assert table.uses == {"User": "App\\Models\\User", "Req": "App\\Http\\Request"}


def test_function_and_const_imports_are_not_classes(symbols_of):
    table = symbols_of("use function App\\helper;\nuse const App\\LIMIT;\n")
    assert table.uses == {}


def test_trait_use_is_not_an_import(symbols_of):
    table = symbols_of("class A {\n    use HasFactory;\n")
    assert table.uses == {}


# --- class and function definitions ---

def test_class_definition_with_namespace(symbols_of):
    table = symbols_of(
        "namespace App\\Models;\n"
        "use Illuminate\\Database\\Eloquent\\Model;\n"
        "class User extends Model implements \\JsonSerializable {\n"
        "    public function toArray() {\n"
    )
    cls = table.class_definition
    assert cls.name == "User"
    assert cls.namespace == "App\\Models"
    assert cls.fqn == "App\\Models\\User"
    assert cls.extends == "Illuminate\\Database\\Eloquent\\Model"
    assert cls.implements == ["JsonSerializable"]
    assert table.function_definition == "toArray"


@pytest.mark.parametrize(
    "header",
    [
        "class User extends Model implements Authenticable, Also {",
        "class User implements Authenticable, Also extends Model {",
    ]
)
def test_extends_implements_order_independent(symbols_of, header):
    table = symbols_of(
        "use Base\\Model;\nuse Contracts\\Authenticable;\nuse Contracts\\Also;\n" + header + "\n"
    )
    assert table.class_definition.extends == "Base\\Model"
    assert table.class_definition.implements == ["Contracts\\Authenticable", "Contracts\\Also"]


def test_braced_namespace(symbols_of):
    table = symbols_of("namespace Shop {\n    class Cart {\n")
    assert table.class_definition.fqn == "Shop\\Cart"


def test_closed_class_is_not_enclosing(symbols_of):
    table = symbols_of("class A {\n    public function x() {}\n}\nfoo(")
    assert table.class_definition is None
    assert table.function_definition is None
    assert [c.name for c in table.classes] == ["A"]


def test_anonymous_class_and_class_constant_are_skipped(symbols_of):
    table = symbols_of("$x = Foo::class;\n$y = new class {\n")
    assert table.classes == []


def test_closures_do_not_count_as_function_definitions(symbols_of):
    table = symbols_of("function outer() {\n    $f = function () {\n")
    assert table.function_definition == "outer"


def test_innermost_named_function(symbols_of):
    table = symbols_of("class A {\n    public function first() {}\n    public function second() {\n")
    assert table.function_definition == "second"


# --- variable bindings ---

def test_typed_parameter(symbols_of):
    table = symbols_of("use App\\Models\\User;\nRoute::get('/', function (User $user) {\n")
    ref = table.variable_type("$user")
    assert ref.written == "User"
    assert ref.fqn == "App\\Models\\User"


@pytest.mark.parametrize(
    "params,expected",
    [
        ("?User $u", "User"),
        ("User|null $u", "User"),
        ("int $u", None),
        ("$u", None),
        ("User|Post $u", None),
        ("User ...$u", None),
        ("Foo $a, User $u = null", "User"),
    ]
)
def test_parameter_types(symbols_of, params, expected):
    table = symbols_of(f"function ({params}) {{\n")
    assert _fqn(table.variable_type("$u")) == expected


def test_new_assignment(symbols_of):
    table = symbols_of("$u = new \\App\\User();\n")
    assert table.variable_type("$u").fqn == "App\\User"


def test_parenthesized_new_assignment(symbols_of):
    table = symbols_of("use App\\User;\n$u = (new User)->fresh();\n")
    assert table.variable_type("$u").fqn == "App\\User"


def test_static_factory_assignment(symbols_of):
    table = symbols_of("use App\\Models\\User;\n$u = User::query()->where('a', 1);\n")
    assert table.variable_type("$u").fqn == "App\\Models\\User"


def test_most_recent_assignment_wins(symbols_of):
    table = symbols_of("$u = new A();\n$u = B::make();\n")
    assert table.variable_type("$u").fqn == "B"


def test_untyped_assignment_hides_earlier_binding(symbols_of):
    table = symbols_of("$u = new A();\n$u = $other;\n")
    assert table.variable_type("$u") is None


def test_class_constant_is_not_a_factory(symbols_of):
    table = symbols_of("$u = User::class;\n")
    assert table.variable_type("$u") is None


def test_foreach_rebinds(symbols_of):
    table = symbols_of("$u = new A();\nforeach ($list as $u) {\n")
    assert table.variable_type("$u") is None


def test_catch_binding(symbols_of):
    table = symbols_of("try {\n} catch (RuntimeException | LogicException $e) {\n")
    assert table.variable_type("$e").fqn == "RuntimeException"


# --- scoping ---

def test_outer_bindings_invisible_in_closure(symbols_of):
    table = symbols_of("$u = new A();\nfoo(function () {\n")
    assert table.variable_type("$u") is None


def test_closure_bindings_do_not_leak(symbols_of):
    table = symbols_of("foo(function () {\n    $inner = new A();\n});\n")
    assert table.variable_type("$inner") is None


def test_sibling_closure_parameters_do_not_leak(symbols_of):
    table = symbols_of(
        "foo(function (NotUser $user) {\n});\n"
        "foo(function ($user) {\n"
    )
    assert table.variable_type("$user") is None


def test_closure_use_captures(symbols_of):
    table = symbols_of("$u = new A();\nfoo(function () use ($u, &$v) {\n")
    assert table.variable_type("$u").fqn == "A"
    assert table.variable_type("$v") is None


def test_arrow_function_does_not_see_enclosing_scope(symbols_of):
    table = symbols_of("$u = new A();\n$f = fn (B $b) => ")
    assert table.variable_type("$u") is None
    assert table.variable_type("$b").fqn == "B"


def test_arrow_function_scope_ends_at_statement(symbols_of):
    table = symbols_of("$f = fn (B $b) => $b;\n")
    assert table.variable_type("$b") is None


def test_arrow_function_scope_ends_at_argument_separator(symbols_of):
    table = symbols_of("foo(fn (B $b) => $b, ")
    assert table.variable_type("$b") is None


# --- properties ---

def test_typed_property(symbols_of):
    table = symbols_of(
        "use App\\Models\\User;\n"
        "class Whatever {\n"
        "    protected User $user;\n"
        "    private ?Logger $logger = null;\n"
        "    public $untyped;\n"
        "    public function something() {\n"
    )
    assert table.property_type("user").fqn == "App\\Models\\User"
    assert table.property_type("logger").fqn == "Logger"
    assert table.property_type("untyped") is None


def test_promoted_constructor_property(symbols_of):
    table = symbols_of(
        "class Job {\n"
        "    public function __construct(private Mailer $mailer, int $tries) {}\n"
        "    public function handle() {\n"
    )
    assert table.property_type("mailer").fqn == "Mailer"
    assert "tries" not in table.class_definition.properties


def test_property_assigned_in_method(symbols_of):
    table = symbols_of(
        "class Job {\n"
        "    public function boot() {\n"
        "        $this->repo = new Repository();\n"
    )
    assert table.property_type("repo").fqn == "Repository"


# --- name resolution ---

@pytest.mark.parametrize(
    "name,uses,expected",
    [
        ("\\Foo\\Bar", {}, "Foo\\Bar"),
        ("Models\\User", {"Models": "App\\Models"}, "App\\Models\\User"),
        ("User", {"User": "App\\User"}, "App\\User"),
        ("Unknown", {}, "Unknown"),
        ("string", {}, None),
        ("NULL", {}, None),
    ]
)
def test_resolve_class_name(name, uses, expected):
    assert resolve_class_name(name, uses) == expected


def test_resolve_self_and_parent():
    cls = ClassDefinition(name="User", namespace="App", extends="Base\\Model")
    assert resolve_class_name("self", {}, cls) == "App\\User"
    assert resolve_class_name("static", {}, cls) == "App\\User"
    assert resolve_class_name("parent", {}, cls) == "Base\\Model"
    assert resolve_class_name("self", {}) is None


def test_enclosing_scope_restored_after_arrow_function(symbols_of):
    table = symbols_of("$u = new A();\nfoo(fn (B $b) => $b, ")
    assert table.variable_type("$u").fqn == "A"
