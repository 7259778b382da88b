"""Render grouped C# declarations as a TypeScript declaration file."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from cststypegen.config import GeneratorConfig
from cststypegen.declarations import (
    ClassDeclaration,
    DeclarationSet,
    EnumDeclaration,
    MemberDeclaration,
    NamespaceGroup,
)
from cststypegen.documentation import extract_documentation
from cststypegen.type_mapper import CSharpToTypeScriptTypeTranslator, ResolutionContext, split_optional


# ============================================================
# Naming helpers
# ============================================================

def to_camel_case(identifier: str) -> str:
    """Lower-case the first character only: 'SByteValue' -> 'sByteValue'."""
    return identifier[:1].lower() + identifier[1:]


def to_enum_object_name(config: GeneratorConfig, enum_name: str) -> str:
    """Name of the numeric enum emitted next to the string-literal union."""
    return f"{enum_name}{config.enum_suffix}"


def render_comment_block(comment_lines: list[str], indent: str) -> list[str]:
    """Wrap lines in a /** ... */ block with aligned '*' markers."""
    output_lines = [f"{indent}/**"]
    for comment_line in comment_lines:
        output_lines.append(f"{indent} * {comment_line}" if comment_line else f"{indent} *")
    output_lines.append(f"{indent} */")
    return output_lines


# ============================================================
# State + registry
# ============================================================

@dataclass(frozen=True)
class EmitterState:
    """Everything the section emitters read; nothing here is mutated."""
    config: GeneratorConfig
    declaration_set: DeclarationSet
    type_translator: CSharpToTypeScriptTypeTranslator


StateEmitter = Callable[[EmitterState], list[str]]


@dataclass
class EmitterRegistry:
    """Ordered list of section emitters that make up the output file."""
    section_emitters: list[StateEmitter] = field(default_factory=list)

    def add_section(self, emitter: StateEmitter) -> None:
        """Register a section emitter; sections render in registration order."""
        self.section_emitters.append(emitter)


def build_emitter_state(declaration_set: DeclarationSet, config: GeneratorConfig) -> EmitterState:
    """Pair the declarations with a translator that knows their enums and nested types."""
    type_translator = CSharpToTypeScriptTypeTranslator(
        config=config,
        registry=declaration_set.type_registry(),
    )
    return EmitterState(config=config, declaration_set=declaration_set, type_translator=type_translator)


# ============================================================
# Declaration emitters
# ============================================================

def emit_enum_lines(state: EmitterState, enum_declaration: EnumDeclaration, indent: str) -> list[str]:
    """Emit the string-literal union and the numeric enum for one C# enum."""
    output_lines: list[str] = []

    documentation = extract_documentation(enum_declaration.documentation_trivia, config=state.config)
    if documentation is not None and not documentation.is_empty:
        output_lines.extend(render_comment_block(documentation.to_lines(), indent))

    union_literal = " | ".join(f"'{member_name}'" for member_name in enum_declaration.members) or "never"
    output_lines.append(f"{indent}export type {enum_declaration.name} = {union_literal};")

    enum_object_name = to_enum_object_name(state.config, enum_declaration.name)
    if enum_declaration.members:
        output_lines.append(f"{indent}export enum {enum_object_name} {{ {', '.join(enum_declaration.members)} }}")
    else:
        output_lines.append(f"{indent}export enum {enum_object_name} {{}}")
    return output_lines


def emit_member_lines(
    state: EmitterState,
    member: MemberDeclaration,
    context: ResolutionContext,
    indent: str,
) -> list[str]:
    """Emit one interface property, preceded by its deprecation/documentation comment."""
    config = state.config

    mapped_type = state.type_translator.to_typescript_type(member.type_expression, context)
    typescript_type, is_optional = split_optional(mapped_type)
    if member.find_attribute(config.allow_absent_attribute_names) is not None:
        is_optional = True

    comment_lines: list[str] = []
    obsolete_attribute = member.find_attribute(config.obsolete_attribute_names)
    if obsolete_attribute is not None:
        deprecation_message = obsolete_attribute.arguments[0] if obsolete_attribute.arguments else ""
        comment_lines.append(f"@deprecated {deprecation_message}".rstrip())

    documentation = extract_documentation(member.documentation_trivia, config=config)
    if documentation is not None:
        comment_lines.extend(documentation.to_lines())

    output_lines: list[str] = []
    if comment_lines:
        output_lines.extend(render_comment_block(comment_lines, indent))

    optional_marker = "?" if is_optional else ""
    output_lines.append(f"{indent}{to_camel_case(member.name)}{optional_marker}: {typescript_type};")
    return output_lines


def emit_class_interface_lines(
    state: EmitterState,
    class_declaration: ClassDeclaration,
    namespace: str,
    indent: str,
    *,
    enclosing_type_names: tuple[str, ...] = (),
) -> list[str]:
    """Emit an interface for a class-like declaration."""
    config = state.config
    context = ResolutionContext(
        declaring_type_name=class_declaration.name,
        declaring_namespace=namespace,
        enclosing_type_names=enclosing_type_names,
    )

    output_lines: list[str] = []
    documentation = extract_documentation(class_declaration.documentation_trivia, config=config)
    if documentation is not None and not documentation.is_empty:
        output_lines.extend(render_comment_block(documentation.to_lines(), indent))

    type_parameter_list = ""
    if class_declaration.type_parameters:
        type_parameter_list = f"<{', '.join(class_declaration.type_parameters)}>"
    output_lines.append(f"{indent}export interface {class_declaration.name}{type_parameter_list} {{")
    member_indent = indent + config.indent_unit
    for member in class_declaration.members:
        output_lines.extend(emit_member_lines(state, member, context, member_indent))
    output_lines.append(f"{indent}}}")
    return output_lines


def emit_nested_declaration_blocks(
    state: EmitterState,
    owner: ClassDeclaration,
    namespace: str,
    indent: str,
    enclosing_type_names: tuple[str, ...] = (),
) -> list[list[str]]:
    """Nested declarations follow their owner at the same level, depth-first."""
    scope = (owner.name, *enclosing_type_names)
    declaration_blocks: list[list[str]] = []
    for nested_declaration in owner.nested_declarations:
        declaration_blocks.append(
            emit_class_interface_lines(state, nested_declaration, namespace, indent, enclosing_type_names=scope)
        )
        declaration_blocks.extend(emit_nested_declaration_blocks(state, nested_declaration, namespace, indent, scope))
    return declaration_blocks


def emit_namespace_group_lines(state: EmitterState, namespace_group: NamespaceGroup) -> list[str]:
    """
    Emit one namespace path as nested blocks:

      declare namespace MyApp {
        export namespace Models {
          ...
        }
      }
    """
    config = state.config
    segments = namespace_group.segments

    output_lines: list[str] = []
    for depth, segment in enumerate(segments):
        keyword = "declare namespace" if depth == 0 else "export namespace"
        output_lines.append(f"{config.indent_unit * depth}{keyword} {segment} {{")

    body_indent = config.indent_unit * len(segments)
    declaration_blocks: list[list[str]] = []
    for enum_declaration in namespace_group.enums:
        declaration_blocks.append(emit_enum_lines(state, enum_declaration, body_indent))

    for class_declaration in namespace_group.classes:
        declaration_blocks.append(
            emit_class_interface_lines(state, class_declaration, namespace_group.namespace, body_indent)
        )
        declaration_blocks.extend(
            emit_nested_declaration_blocks(state, class_declaration, namespace_group.namespace, body_indent)
        )

    for block_index, declaration_block in enumerate(declaration_blocks):
        if block_index > 0:
            output_lines.append("")
        output_lines.extend(declaration_block)

    for depth in reversed(range(len(segments))):
        output_lines.append(f"{config.indent_unit * depth}}}")
    return output_lines


# ============================================================
# Sections (state emitters)
# ============================================================

def emit_banner_section(state: EmitterState) -> list[str]:
    """Emit the file banner."""
    return [*state.config.banner_lines, ""]


def emit_passthrough_interfaces_section(state: EmitterState) -> list[str]:
    """Declare each pass-through wrapper once, globally (DbSet<T> and friends)."""
    output_lines: list[str] = []
    for wrapper_name in state.config.passthrough_generic_names:
        output_lines.append(f"interface {wrapper_name}<T> extends Array<T> {{}}")
    if output_lines:
        output_lines.append("")
    return output_lines


def emit_namespace_groups_section(state: EmitterState) -> list[str]:
    """Emit every namespace group in encounter order."""
    output_lines: list[str] = []
    for namespace_group in state.declaration_set.namespace_groups():
        output_lines.extend(emit_namespace_group_lines(state, namespace_group))
        output_lines.append("")
    return output_lines


def create_default_registry() -> EmitterRegistry:
    """Build the default registry of section emitters."""
    registry = EmitterRegistry()
    registry.add_section(emit_banner_section)
    registry.add_section(emit_passthrough_interfaces_section)
    registry.add_section(emit_namespace_groups_section)
    return registry


def render_typescript(
    declaration_set: DeclarationSet,
    *,
    config: GeneratorConfig | None = None,
    registry: EmitterRegistry | None = None,
) -> str:
    """Render the whole declaration file as one string."""
    if config is None:
        config = GeneratorConfig()
    if registry is None:
        registry = create_default_registry()

    state = build_emitter_state(declaration_set, config)
    output_lines: list[str] = []
    for emitter in registry.section_emitters:
        output_lines.extend(emitter(state))
    return "\n".join(output_lines).rstrip() + "\n"
