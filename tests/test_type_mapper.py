import pytest

from cststypegen.config import NUMBER_TYPE_NAMES, STRING_LIKE_TYPE_NAMES, build_config, default_scalar_type_map
from cststypegen.type_mapper import ResolutionContext, TypeRegistry, map_type, split_optional


@pytest.mark.parametrize(
    ("type_expression", "expected"),
    [
        ("int", "number"),
        ("decimal", "number"),
        ("string", "string"),
        ("char", "string"),
        ("bool", "boolean"),
        ("DateTime", "string"),
        ("Guid", "string"),
        ("TimeSpan", "string"),
        ("object", "any"),
        ("dynamic", "any"),
        ("void", "void"),
        ("Int32", "number"),
        ("System.String", "string"),
        ("global::System.Int32", "number"),
        ("System.Guid?", "string?"),
    ],
)
def test_scalars(type_expression, expected):
    assert map_type(type_expression) == expected


def test_scalar_table_only_targets_primitives():
    targets = set(default_scalar_type_map().values())
    assert targets <= {"number", "string", "boolean", "any", "void"}
    for type_name in (*NUMBER_TYPE_NAMES, *STRING_LIKE_TYPE_NAMES):
        assert map_type(type_name) == map_type(type_name)
        assert map_type(type_name) in targets


@pytest.mark.parametrize(
    ("type_expression", "expected"),
    [
        ("int?", "number?"),
        ("Nullable<int>", "number?"),
        ("System.Nullable<Guid>", "string?"),
        ("string?", "string?"),
        ("int?[]", "(number | null)[]"),
        ("int[]?", "number[]?"),
        ("List<int?>", "(number | null)[]"),
        ("Dictionary<string, string?>", "Record<string, string | null>"),
    ],
)
def test_optionality(type_expression, expected):
    assert map_type(type_expression) == expected


@pytest.mark.parametrize("type_expression", ["int", "string", "List<int>", "Dictionary<string, int>", "User", "int[]"])
def test_optional_marker_is_appended_to_the_plain_mapping(type_expression):
    assert map_type(type_expression + "?") == map_type(type_expression) + "?"
    assert split_optional(map_type(type_expression + "?")) == (map_type(type_expression), True)


@pytest.mark.parametrize(
    ("type_expression", "expected"),
    [
        ("int[]", "number[]"),
        ("string[][]", "string[][]"),
        ("int[,]", "number[][]"),
        ("int[,,]", "number[][][]"),
        ("List<string>", "string[]"),
        ("IEnumerable<User>", "User[]"),
        ("HashSet<Guid>", "string[]"),
        ("System.Collections.Generic.List<int>", "number[]"),
        ("List<List<int>>", "number[][]"),
    ],
)
def test_arrays_and_ordered_collections(type_expression, expected):
    assert map_type(type_expression) == expected


def test_jagged_array_is_not_a_tuple():
    assert map_type("int[][]") == "number[][]"
    assert map_type("(int, int)[]") == "[number, number][]"


@pytest.mark.parametrize(
    ("type_expression", "expected"),
    [
        ("Dictionary<string, int>", "Record<string, number>"),
        ("ConcurrentDictionary<int, string>", "Record<number, string>"),
        ("Dictionary<string, List<int>>", "Record<string, number[]>"),
        ("IReadOnlyDictionary<string, Dictionary<int, bool>>", "Record<string, Record<number, boolean>>"),
    ],
)
def test_keyed_collections(type_expression, expected):
    assert map_type(type_expression) == expected


def test_passthrough_wrapper_keeps_its_name():
    assert map_type("DbSet<Product>") == "DbSet<Product>"
    assert map_type("DbSet<MyApp.Models.Product>", ResolutionContext("Catalog", "MyApp.Models")) == "DbSet<Product>"


@pytest.mark.parametrize(
    ("type_expression", "expected"),
    [
        ("(string Name, int Age)", "[string, number]"),
        ("(int, string, bool)", "[number, string, boolean]"),
        ("Tuple<int, string>", "[number, string]"),
        ("ValueTuple<string, int>", "[string, number]"),
    ],
)
def test_tuples(type_expression, expected):
    assert map_type(type_expression) == expected


@pytest.mark.parametrize(
    ("type_expression", "expected"),
    [
        ("Task", "Promise<void>"),
        ("ValueTask", "Promise<void>"),
        ("Task<int>", "Promise<number>"),
        ("Task<List<User>>", "Promise<User[]>"),
    ],
)
def test_async_results(type_expression, expected):
    assert map_type(type_expression) == expected


@pytest.mark.parametrize(
    ("type_expression", "expected"),
    [
        ("Func<int, string>", "(p0: number) => string"),
        ("Func<bool>", "() => boolean"),
        ("Func<int, string, bool>", "(p0: number, p1: string) => boolean"),
        ("Action", "() => void"),
        ("Action<string>", "(p0: string) => void"),
        ("Predicate<int>", "(value: number) => boolean"),
        ("Func<int, string>[]", "((p0: number) => string)[]"),
    ],
)
def test_delegates(type_expression, expected):
    assert map_type(type_expression) == expected


def test_identity_fallbacks():
    assert map_type("Product") == "Product"
    assert map_type("Wrapper<int>") == "Wrapper<number>"
    assert map_type("List<") == "List<"
    assert map_type("  int$ ") == "int$"


def test_same_input_same_context_same_output():
    context = ResolutionContext("Order", "MyApp.Models")
    assert map_type("List<MyApp.Models.User?>", context) == map_type("List<MyApp.Models.User?>", context)


def test_cross_namespace_reference_stays_qualified():
    assert map_type("MetricsShared.Service", ResolutionContext("Host", "MyApp")) == "MetricsShared.Service"
    assert map_type("List<MetricsShared.Service>", ResolutionContext("Host", "MyApp")) == "MetricsShared.Service[]"


def test_same_namespace_reference_is_unqualified():
    assert map_type("MyApp.Models.User", ResolutionContext("Order", "MyApp.Models")) == "User"
    assert map_type("MyApp.Models.User") == "User"


def test_enums_are_unqualified_across_namespaces():
    registry = TypeRegistry(enum_names=frozenset({"Status"}))
    context = ResolutionContext("User", "MyApp.Models")
    assert map_type("MyApp.Enums.Status", context, registry=registry) == "Status"
    assert map_type("MyApp.Enums.Status?", context, registry=registry) == "Status?"


def test_nested_type_is_qualified_by_its_owner():
    registry = TypeRegistry(nested_type_names_by_owner={"AdvancedTypes": frozenset({"NestedType"})})
    inside_owner = ResolutionContext("AdvancedTypes", "MyApp")
    assert map_type("NestedType", inside_owner, registry=registry) == "AdvancedTypes.NestedType"
    assert map_type("List<NestedType>", inside_owner, registry=registry) == "AdvancedTypes.NestedType[]"
    assert map_type("AdvancedTypes.NestedType", ResolutionContext("Other", "MyApp"), registry=registry) == (
        "AdvancedTypes.NestedType"
    )
    assert map_type("MyApp.AdvancedTypes.NestedType", ResolutionContext("Other", "Elsewhere"), registry=registry) == (
        "MyApp.AdvancedTypes.NestedType"
    )


def test_unknown_name_with_same_spelling_as_a_nested_type_elsewhere_is_untouched():
    registry = TypeRegistry(nested_type_names_by_owner={"AdvancedTypes": frozenset({"NestedType"})})
    assert map_type("NestedType", ResolutionContext("Other", "MyApp"), registry=registry) == "NestedType"


def test_user_templates_take_precedence(tmp_path):
    type_map_path = tmp_path / "type_map.yaml"
    type_map_path.write_text(
        "decimal: string\nLazy<T>: {T}\nKeyValuePair<K, V>: [{K}, {V}]\nList<T>: ReadonlyArray<{T}>\n",
        encoding="utf-8",
    )
    config = build_config(type_map_path)

    assert map_type("decimal", config=config) == "string"
    assert map_type("Lazy<int>", config=config) == "number"
    assert map_type("KeyValuePair<string, int>", config=config) == "[string, number]"
    assert map_type("List<int>", config=config) == "ReadonlyArray<number>"
