"""Configuration for the C# to TypeScript generator."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cststypegen.errors import CsTsTypeGenError


# ============================================================
# Type mapping overrides
# ============================================================

TYPE_MAP_KEY_REGEX = re.compile(
    r"^(?P<name>[A-Za-z_][A-Za-z0-9_.]*)\s*(?:<(?P<parameters>[^<>]*)>)?$"
)


def parse_type_mapping_key(path: Path, line_number: int, key: str) -> tuple[str, list[str] | None]:
    """'decimal' -> ('decimal', None); 'KeyValuePair<K, V>' -> ('KeyValuePair', ['K', 'V'])."""
    key_match = TYPE_MAP_KEY_REGEX.match(key)
    if key_match is None:
        raise CsTsTypeGenError(f"{path}:{line_number}: invalid C# type name {key!r}")

    parameters_text = key_match.group("parameters")
    if parameters_text is None:
        return key_match.group("name"), None

    parameter_names = [parameter.strip() for parameter in parameters_text.split(",")]
    if not all(parameter_names):
        raise CsTsTypeGenError(f"{path}:{line_number}: empty type parameter in {key!r}")
    return key_match.group("name"), parameter_names


def load_type_mapping(path: Path) -> tuple[dict[str, str], dict[str, tuple[list[str], str]]]:
    """
    Load scalar overrides and generic templates from a `key: value` file.

    The file was named explicitly, so a missing file or a malformed line is an
    error rather than an empty mapping.
    """
    if not path.is_file():
        raise CsTsTypeGenError(f"type map not found: {path}")

    scalar_overrides: dict[str, str] = {}
    generic_templates: dict[str, tuple[list[str], str]] = {}
    for line_number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        key, separator, typescript_type = stripped.partition(":")
        typescript_type = typescript_type.strip()
        if not separator or not typescript_type:
            raise CsTsTypeGenError(f"{path}:{line_number}: expected 'CSharpType: typescriptType'")

        type_name, parameter_names = parse_type_mapping_key(path, line_number, key.strip())
        if parameter_names is None:
            scalar_overrides[type_name] = typescript_type
        else:
            generic_templates[type_name] = (parameter_names, typescript_type)
    return scalar_overrides, generic_templates


# ============================================================
# Generator configuration
# ============================================================

NUMBER_TYPE_NAMES = (
    "byte", "sbyte", "short", "ushort", "int", "uint", "long", "ulong",
    "nint", "nuint", "float", "double", "decimal",
    "Byte", "SByte", "Int16", "UInt16", "Int32", "UInt32", "Int64", "UInt64",
    "IntPtr", "UIntPtr", "Half", "Single", "Double", "Decimal", "BigInteger",
)

# Serialized as strings on the wire, never as structured values
STRING_LIKE_TYPE_NAMES = (
    "string", "char", "String", "Char",
    "DateTime", "DateTimeOffset", "DateOnly", "TimeOnly", "TimeSpan",
    "Guid", "Uri", "Version",
)


def default_scalar_type_map() -> dict[str, str]:
    """Build the default C# scalar -> TypeScript primitive table."""
    scalar_type_map: dict[str, str] = {}
    scalar_type_map.update({type_name: "number" for type_name in NUMBER_TYPE_NAMES})
    scalar_type_map.update({type_name: "string" for type_name in STRING_LIKE_TYPE_NAMES})
    scalar_type_map.update(
        {
            "bool": "boolean",
            "Boolean": "boolean",
            "object": "any",
            "Object": "any",
            "dynamic": "any",
            "void": "void",
            "Void": "void",
        }
    )
    return scalar_type_map


@dataclass(frozen=True)
class GeneratorConfig:
    """Configuration for translating C# declarations into TypeScript."""
    scalar_type_map: dict[str, str] = field(default_factory=default_scalar_type_map)

    # "Name" -> (["T1", "T2"], "template using {T1} / {T2}"), checked before built-in generics
    generic_type_map: dict[str, tuple[list[str], str]] = field(default_factory=dict)

    ordered_collection_names: frozenset[str] = frozenset(
        {
            "List", "IList", "ICollection", "IEnumerable", "IReadOnlyList", "IReadOnlyCollection",
            "Collection", "HashSet", "ISet", "IReadOnlySet", "SortedSet", "Stack", "Queue",
            "LinkedList", "ConcurrentBag", "ConcurrentQueue", "ConcurrentStack",
            "ReadOnlyCollection", "ImmutableArray", "ImmutableList",
        }
    )
    keyed_collection_names: frozenset[str] = frozenset(
        {
            "Dictionary", "IDictionary", "ConcurrentDictionary", "ReadOnlyDictionary",
            "IReadOnlyDictionary", "SortedDictionary", "ImmutableDictionary",
        }
    )
    tuple_generic_names: frozenset[str] = frozenset({"Tuple", "ValueTuple"})
    nullable_wrapper_names: frozenset[str] = frozenset({"Nullable"})
    async_result_names: frozenset[str] = frozenset({"Task", "ValueTask"})

    # Wrappers whose name survives translation; each one gets a shared global interface
    passthrough_generic_names: tuple[str, ...] = ("DbSet",)

    # Qualified names rooted here are resolved against the scalar table by simple name
    base_library_namespaces: frozenset[str] = frozenset({"System"})

    default_namespace: str = "Global"
    enum_suffix: str = "Enum"

    remarks_introduction: str = "Remarks:"
    code_sample_language: str = "csharp"

    allow_absent_attribute_names: frozenset[str] = frozenset({"AllowNull", "AllowNullAttribute"})
    obsolete_attribute_names: frozenset[str] = frozenset({"Obsolete", "ObsoleteAttribute"})

    excluded_directory_names: frozenset[str] = frozenset({"bin", "obj"})

    indent_unit: str = "  "
    banner_lines: tuple[str, ...] = (
        "// typedefs.d.ts (AUTOGENERATED by cststypegen)",
        "// Do not edit by hand; regenerate from the C# sources instead.",
    )


def build_config(type_map_path: Path | None = None) -> GeneratorConfig:
    """Build a config, merging overrides from a type mapping file when given."""
    if type_map_path is None:
        return GeneratorConfig()

    scalar_overrides, generic_overrides = load_type_mapping(type_map_path)
    base_scalar_type_map = default_scalar_type_map()
    return GeneratorConfig(
        scalar_type_map={**base_scalar_type_map, **scalar_overrides},
        generic_type_map=generic_overrides,
    )


# ============================================================
# Environment settings
# ============================================================

class Settings(BaseSettings):
    """Environment-variable fallbacks for the command line."""
    model_config = SettingsConfigDict(env_file=(".env",), env_file_encoding="utf-8", extra="ignore")

    source_directory: str | None = Field(default=None, alias="CsTsTypeGen_SourceDirectory")
    definitions_path: str | None = Field(default=None, alias="CsTsTypeGen_DefinitionsPath")
    generate_definitions: str | None = Field(default=None, alias="CsTsTypeGen_GenerateDefinitions")
    type_map_path: str | None = Field(default=None, alias="CsTsTypeGen_TypeMapPath")

    @property
    def generation_enabled(self) -> bool:
        if self.generate_definitions is None:
            return True
        return self.generate_definitions.strip().lower() != "false"
