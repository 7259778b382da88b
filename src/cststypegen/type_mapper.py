"""Translate C# type expressions into TypeScript type expressions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from cststypegen.config import GeneratorConfig
from cststypegen.errors import TypeGrammarError
from cststypegen.type_grammar import (
    ArrayType,
    GenericType,
    NamedType,
    NullableType,
    TupleType,
    TypeNode,
    parse_type_expression,
)


# Appended to a mapped type that may be absent; the emitter turns it into "name?:"
OPTIONALITY_MARKER = "?"

FUNC_DELEGATE_NAME = "Func"
ACTION_DELEGATE_NAME = "Action"
PREDICATE_DELEGATE_NAME = "Predicate"


# ============================================================
# Resolution context + registry
# ============================================================

@dataclass(frozen=True)
class ResolutionContext:
    """
    Where a type expression is referenced from.

    enclosing_type_names lists the declarations around declaring_type_name,
    innermost first; nested names are looked up through that chain.
    """
    declaring_type_name: str | None = None
    declaring_namespace: str | None = None
    enclosing_type_names: tuple[str, ...] = ()

    @property
    def type_scope(self) -> tuple[str, ...]:
        if self.declaring_type_name is None:
            return self.enclosing_type_names
        return (self.declaring_type_name, *self.enclosing_type_names)


@dataclass(frozen=True)
class TypeRegistry:
    """Facts gathered during discovery that name resolution depends on."""
    enum_names: frozenset[str] = frozenset()
    nested_type_names_by_owner: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def is_enum(self, type_name: str) -> bool:
        return type_name in self.enum_names

    def owns_nested_type(self, owner_name: str | None, nested_name: str) -> bool:
        if owner_name is None:
            return False
        return nested_name in self.nested_type_names_by_owner.get(owner_name, frozenset())


def split_optional(mapped_type: str) -> tuple[str, bool]:
    """Split a mapped type into (type_text, is_optional)."""
    if mapped_type.endswith(OPTIONALITY_MARKER):
        return mapped_type[: -len(OPTIONALITY_MARKER)], True
    return mapped_type, False


def has_top_level_operator(typescript_type: str) -> bool:
    """True when a union bar or function arrow appears outside any brackets."""
    depth = 0
    index = 0
    while index < len(typescript_type):
        if typescript_type.startswith("=>", index):
            if depth == 0:
                return True
            index += 2
            continue
        character = typescript_type[index]
        if character in "(<[{":
            depth += 1
        elif character in ")>]}":
            depth -= 1
        elif character == "|" and depth == 0:
            return True
        index += 1
    return False


def as_array_element(typescript_type: str) -> str:
    """Parenthesize unions and function types before appending []."""
    if has_top_level_operator(typescript_type):
        return f"({typescript_type})"
    return typescript_type


# ============================================================
# Type translation
# ============================================================

@dataclass(frozen=True)
class CSharpToTypeScriptTypeTranslator:
    """Translate C# type expressions into TypeScript type strings."""
    config: GeneratorConfig = field(default_factory=GeneratorConfig)
    registry: TypeRegistry = field(default_factory=TypeRegistry)

    def to_typescript_type(self, type_expression: str, context: ResolutionContext | None = None) -> str:
        """
        Map a C# type expression; never raises.

        Input the grammar cannot parse is returned unchanged, as is any name
        with no better TypeScript representation.
        """
        if context is None:
            context = ResolutionContext()
        try:
            type_node = parse_type_expression(type_expression)
        except TypeGrammarError:
            return type_expression.strip()
        return self.translate(type_node, context)

    def translate(self, type_node: TypeNode, context: ResolutionContext) -> str:
        """Translate a parsed tree; optionality at the root becomes a trailing marker."""
        optional_inner = self.unwrap_optional(type_node)
        if optional_inner is None:
            return self.translate_node(type_node, context)

        while True:
            deeper_inner = self.unwrap_optional(optional_inner)
            if deeper_inner is None:
                break
            optional_inner = deeper_inner
        return f"{self.translate_node(optional_inner, context)}{OPTIONALITY_MARKER}"

    def unwrap_optional(self, type_node: TypeNode) -> TypeNode | None:
        """Return T for T? and Nullable<T>, otherwise None."""
        if isinstance(type_node, NullableType):
            return type_node.inner
        if (
            isinstance(type_node, GenericType)
            and len(type_node.arguments) == 1
            and self.builtin_generic_name(type_node) in self.config.nullable_wrapper_names
        ):
            return type_node.arguments[0]
        return None

    def translate_node(self, type_node: TypeNode, context: ResolutionContext) -> str:
        """Translate a node in a nested position (element, argument, parameter)."""
        optional_inner = self.unwrap_optional(type_node)
        if optional_inner is not None:
            inner_type = self.translate_node(optional_inner, context)
            if inner_type.endswith(" | null"):
                return inner_type
            return f"{inner_type} | null"

        if isinstance(type_node, ArrayType):
            # Rectangular arrays (rank > 1) have no TypeScript counterpart; they are
            # emitted as arrays of arrays, which loses the fixed-shape information.
            element_type = as_array_element(self.translate_node(type_node.element, context))
            return element_type + "[]" * type_node.rank

        if isinstance(type_node, TupleType):
            element_types = [self.translate_node(element.type, context) for element in type_node.elements]
            return f"[{', '.join(element_types)}]"

        if isinstance(type_node, GenericType):
            return self.translate_generic(type_node, context)

        return self.translate_named(type_node, context)

    # ---- generics

    def builtin_generic_name(self, type_node: GenericType) -> str | None:
        """Simple name for unqualified or base-library generics; None for user-qualified ones."""
        if not type_node.qualifier:
            return type_node.name
        if type_node.name.split(".", 1)[0] in self.config.base_library_namespaces:
            return type_node.simple_name
        return None

    def translate_generic(self, type_node: GenericType, context: ResolutionContext) -> str:
        config = self.config
        generic_name = self.builtin_generic_name(type_node)
        arguments = type_node.arguments

        template_spec = config.generic_type_map.get(generic_name or type_node.name)
        if template_spec is not None:
            param_names, template = template_spec
            if len(arguments) == len(param_names):
                arg_types = [self.translate_node(argument, context) for argument in arguments]
                rendered = template
                if "{T}" in rendered:
                    rendered = rendered.replace("{T}", arg_types[0])
                for index, arg_type in enumerate(arg_types, start=1):
                    rendered = rendered.replace(f"{{T{index}}}", arg_type)
                for param_name, arg_type in zip(param_names, arg_types):
                    rendered = rendered.replace(f"{{{param_name}}}", arg_type)
                return rendered

        if generic_name in config.ordered_collection_names and len(arguments) == 1:
            return as_array_element(self.translate_node(arguments[0], context)) + "[]"

        if generic_name in config.keyed_collection_names and len(arguments) == 2:
            key_type = self.translate_node(arguments[0], context)
            value_type = self.translate_node(arguments[1], context)
            return f"Record<{key_type}, {value_type}>"

        if generic_name in config.passthrough_generic_names and len(arguments) == 1:
            return f"{generic_name}<{self.translate_node(arguments[0], context)}>"

        if generic_name in config.tuple_generic_names:
            element_types = [self.translate_node(argument, context) for argument in arguments]
            return f"[{', '.join(element_types)}]"

        if generic_name in config.async_result_names and len(arguments) == 1:
            return f"Promise<{self.translate_node(arguments[0], context)}>"

        if generic_name == FUNC_DELEGATE_NAME:
            parameter_types = [self.translate_node(argument, context) for argument in arguments[:-1]]
            return_type = self.translate_node(arguments[-1], context)
            return f"({render_positional_parameters(parameter_types)}) => {return_type}"

        if generic_name == ACTION_DELEGATE_NAME:
            parameter_types = [self.translate_node(argument, context) for argument in arguments]
            return f"({render_positional_parameters(parameter_types)}) => void"

        if generic_name == PREDICATE_DELEGATE_NAME and len(arguments) == 1:
            return f"(value: {self.translate_node(arguments[0], context)}) => boolean"

        # Unknown generic: keep the (resolved) name, still translate the arguments
        arg_types = [self.translate_node(argument, context) for argument in arguments]
        base_name = self.resolve_qualified_name(type_node.name, context) if type_node.qualifier else type_node.name
        return f"{base_name}<{', '.join(arg_types)}>"

    # ---- names

    def translate_named(self, type_node: NamedType, context: ResolutionContext) -> str:
        config = self.config
        type_name = type_node.name
        if type_node.qualifier:
            return self.resolve_qualified_name(type_name, context)

        scalar_type = config.scalar_type_map.get(type_name)
        if scalar_type is not None:
            return scalar_type

        if type_name in config.async_result_names:
            return "Promise<void>"

        if type_name == ACTION_DELEGATE_NAME:
            return "() => void"

        scope_owner_name = self.find_scope_owner(context, type_name)
        if scope_owner_name is not None:
            return f"{scope_owner_name}.{type_name}"

        return type_name

    def find_scope_owner(self, context: ResolutionContext, nested_name: str) -> str | None:
        """Innermost declaration in scope that owns a nested type called nested_name."""
        for type_name in context.type_scope:
            if self.registry.owns_nested_type(type_name, nested_name):
                return type_name
        return None

    def resolve_qualified_name(self, qualified_name: str, context: ResolutionContext) -> str:
        """Decide how much of a dotted name survives at the reference site."""
        segments = qualified_name.split(".")
        simple_name = segments[-1]

        if segments[0] in self.config.base_library_namespaces:
            return self.translate_named(NamedType(simple_name), ResolutionContext())

        # Enums are referenced unqualified wherever they are declared
        if self.registry.is_enum(simple_name):
            return simple_name

        owner_name = segments[-2]
        if self.registry.owns_nested_type(owner_name, simple_name):
            # The written qualifier names the declaring context; the reference site wins
            scope_owner_name = self.find_scope_owner(context, simple_name)
            if scope_owner_name is not None:
                return f"{scope_owner_name}.{simple_name}"
            owner_namespace = ".".join(segments[:-2])
            if (
                owner_namespace
                and context.declaring_namespace is not None
                and owner_namespace != context.declaring_namespace
            ):
                return qualified_name
            return f"{owner_name}.{simple_name}"

        type_namespace = ".".join(segments[:-1])
        if context.declaring_namespace is not None and type_namespace != context.declaring_namespace:
            return qualified_name
        return simple_name


def render_positional_parameters(parameter_types: list[str]) -> str:
    """Synthesize p0, p1, ... parameter names for a function type literal."""
    return ", ".join(f"p{index}: {parameter_type}" for index, parameter_type in enumerate(parameter_types))


def map_type(
    type_expression: str,
    context: ResolutionContext | None = None,
    *,
    config: GeneratorConfig | None = None,
    registry: TypeRegistry | None = None,
) -> str:
    """Map one C# type expression to TypeScript with a throwaway translator."""
    translator = CSharpToTypeScriptTypeTranslator(
        config=config if config is not None else GeneratorConfig(),
        registry=registry if registry is not None else TypeRegistry(),
    )
    return translator.to_typescript_type(type_expression, context)
