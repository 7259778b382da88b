"""
C# declaration extraction backed by tree-sitter.

Produces SourceUnit values (classes, enums, properties, attributes, leading
comments, namespaces) for the generator; nothing here interprets types.
"""
from __future__ import annotations

from pathlib import Path

import tree_sitter_c_sharp
from tree_sitter import Language, Node, Parser

from cststypegen.config import GeneratorConfig
from cststypegen.declarations import (
    AttributeUsage,
    ClassDeclaration,
    EnumDeclaration,
    MemberDeclaration,
    SourceUnit,
)
from cststypegen.errors import SourceParseError


CSHARP_LANGUAGE = Language(tree_sitter_c_sharp.language())

CLASS_LIKE_NODE_KINDS = {
    "class_declaration": "class",
    "struct_declaration": "struct",
    "record_declaration": "record",
    "record_struct_declaration": "record",
    "interface_declaration": "interface",
}

EXCLUDED_MEMBER_MODIFIERS = frozenset({"static", "private", "protected"})
ACCESSIBILITY_MODIFIERS = frozenset({"public", "internal", "protected", "private"})


def create_csharp_parser() -> Parser:
    """One parser per caller; tree-sitter parsers are not shared across threads."""
    parser = Parser()
    parser.language = CSHARP_LANGUAGE
    return parser


# ============================================================
# Tree-sitter helpers
# ============================================================

def node_text(node: Node | None, source_bytes: bytes) -> str:
    """Return the source text for a tree-sitter node."""
    if node is None:
        return ""
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def find_child(node: Node, *node_types: str) -> Node | None:
    for child in node.children:
        if child.type in node_types:
            return child
    return None


def find_first_error(node: Node) -> Node | None:
    """Depth-first search for an ERROR or MISSING node."""
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = find_first_error(child)
            if found is not None:
                return found
    return None


def get_modifiers(node: Node, source_bytes: bytes) -> list[str]:
    """Return all modifier texts for a declaration node."""
    return [node_text(child, source_bytes) for child in node.children if child.type == "modifier"]


def collect_leading_comments(node: Node, source_bytes: bytes) -> tuple[str, ...]:
    """
    The run of comment siblings immediately before node, in source order.

    A comment that starts on the line where the previous node ends is that
    node's trailing comment and is not included.
    """
    comment_nodes: list[Node] = []
    sibling = node.prev_sibling
    while sibling is not None and sibling.type == "comment":
        comment_nodes.append(sibling)
        sibling = sibling.prev_sibling
    comment_nodes.reverse()

    if comment_nodes and sibling is not None and comment_nodes[0].start_point[0] == sibling.end_point[0]:
        comment_nodes = comment_nodes[1:]
    return tuple(node_text(comment_node, source_bytes).strip() for comment_node in comment_nodes)


def unquote_attribute_argument(argument_text: str) -> str:
    """'"Use X"' -> 'Use X'; non-literal arguments are kept verbatim."""
    if argument_text.startswith('@"') and argument_text.endswith('"') and len(argument_text) >= 3:
        return argument_text[2:-1]
    if argument_text.startswith('"') and argument_text.endswith('"') and len(argument_text) >= 2:
        return argument_text[1:-1]
    return argument_text


def qualify_namespace(parent_namespace: str | None, namespace_name: str) -> str:
    return f"{parent_namespace}.{namespace_name}" if parent_namespace else namespace_name


# ============================================================
# Declaration collection
# ============================================================

class DeclarationCollector:
    """Walks one syntax tree and collects declarations in source order."""

    def __init__(self, source_bytes: bytes, config: GeneratorConfig) -> None:
        self.source_bytes = source_bytes
        self.config = config
        self.classes: list[ClassDeclaration] = []
        self.enums: list[EnumDeclaration] = []

    def text(self, node: Node | None) -> str:
        return node_text(node, self.source_bytes)

    def identifier_text(self, node: Node | None) -> str:
        """Declared name without the verbatim prefix: '@class' -> 'class'."""
        return self.text(node).strip().lstrip("@")

    def visit_container(self, container_node: Node, namespace: str | None) -> None:
        """Visit a compilation unit, namespace body or file-scoped namespace."""
        current_namespace = namespace
        for child in container_node.named_children:
            if child.type == "namespace_declaration":
                namespace_name = self.text(child.child_by_field_name("name")).strip()
                body_node = child.child_by_field_name("body") or find_child(child, "declaration_list")
                if body_node is not None:
                    self.visit_container(body_node, qualify_namespace(namespace, namespace_name))
                continue

            if child.type == "file_scoped_namespace_declaration":
                namespace_name = self.text(child.child_by_field_name("name")).strip()
                current_namespace = qualify_namespace(namespace, namespace_name)
                # Depending on the grammar version the following declarations are
                # either siblings (handled by current_namespace) or children.
                self.visit_container(child, current_namespace)
                continue

            if child.type in CLASS_LIKE_NODE_KINDS:
                self.classes.append(self.build_class(child, current_namespace))
                continue

            if child.type == "enum_declaration":
                self.enums.append(self.build_enum(child, current_namespace))

    def resolve_namespace(self, namespace: str | None) -> str:
        return namespace or self.config.default_namespace

    def build_enum(self, enum_node: Node, namespace: str | None) -> EnumDeclaration:
        body_node = enum_node.child_by_field_name("body") or find_child(enum_node, "enum_member_declaration_list")
        member_names: list[str] = []
        if body_node is not None:
            for member_node in body_node.named_children:
                if member_node.type != "enum_member_declaration":
                    continue
                name_node = member_node.child_by_field_name("name") or find_child(member_node, "identifier")
                member_names.append(self.identifier_text(name_node))

        return EnumDeclaration(
            name=self.identifier_text(enum_node.child_by_field_name("name")),
            namespace=self.resolve_namespace(namespace),
            members=tuple(member_names),
            documentation_trivia=collect_leading_comments(enum_node, self.source_bytes),
        )

    def build_class(self, class_node: Node, namespace: str | None) -> ClassDeclaration:
        kind = CLASS_LIKE_NODE_KINDS[class_node.type]
        members: list[MemberDeclaration] = []
        nested_declarations: list[ClassDeclaration] = []

        type_parameter_names: list[str] = []
        type_parameter_list_node = find_child(class_node, "type_parameter_list")
        if type_parameter_list_node is not None:
            for type_parameter_node in type_parameter_list_node.named_children:
                if type_parameter_node.type != "type_parameter":
                    continue
                name_node = type_parameter_node.child_by_field_name("name") or find_child(
                    type_parameter_node, "identifier"
                )
                type_parameter_names.append(self.identifier_text(name_node))

        # record Person(string Name, int Age);
        parameter_list_node = find_child(class_node, "parameter_list")
        if parameter_list_node is not None:
            for parameter_node in parameter_list_node.named_children:
                if parameter_node.type == "parameter":
                    members.append(self.build_parameter_member(parameter_node))

        body_node = class_node.child_by_field_name("body") or find_child(class_node, "declaration_list")
        if body_node is not None and body_node.type == "declaration_list":
            for member_node in body_node.named_children:
                if member_node.type == "property_declaration":
                    if self.is_exported_property(member_node, kind):
                        members.append(self.build_property_member(member_node))
                elif member_node.type in CLASS_LIKE_NODE_KINDS:
                    nested_declarations.append(self.build_class(member_node, namespace))
                elif member_node.type == "enum_declaration":
                    # No nested enum form in the output; the enum joins its namespace
                    self.enums.append(self.build_enum(member_node, namespace))

        return ClassDeclaration(
            name=self.identifier_text(class_node.child_by_field_name("name")),
            namespace=self.resolve_namespace(namespace),
            kind=kind,  # type: ignore[arg-type]
            type_parameters=tuple(type_parameter_names),
            members=tuple(members),
            documentation_trivia=collect_leading_comments(class_node, self.source_bytes),
            nested_declarations=tuple(nested_declarations),
        )

    def is_exported_property(self, property_node: Node, declaring_kind: str) -> bool:
        if find_child(property_node, "explicit_interface_specifier") is not None:
            return False
        modifiers = set(get_modifiers(property_node, self.source_bytes))
        if modifiers & EXCLUDED_MEMBER_MODIFIERS:
            return False
        # Without an access modifier, interface members are public and all others private
        return bool(modifiers & ACCESSIBILITY_MODIFIERS) or declaring_kind == "interface"

    def build_property_member(self, property_node: Node) -> MemberDeclaration:
        type_text = self.text(property_node.child_by_field_name("type"))
        return MemberDeclaration(
            name=self.identifier_text(property_node.child_by_field_name("name")),
            type_expression=" ".join(type_text.split()),
            attributes=self.collect_attributes(property_node),
            documentation_trivia=collect_leading_comments(property_node, self.source_bytes),
        )

    def build_parameter_member(self, parameter_node: Node) -> MemberDeclaration:
        type_text = self.text(parameter_node.child_by_field_name("type"))
        return MemberDeclaration(
            name=self.identifier_text(parameter_node.child_by_field_name("name")),
            type_expression=" ".join(type_text.split()),
            attributes=self.collect_attributes(parameter_node),
        )

    def collect_attributes(self, declaration_node: Node) -> tuple[AttributeUsage, ...]:
        """Return attributes applied to a declaration, with simple names."""
        attributes: list[AttributeUsage] = []
        for attribute_list_node in declaration_node.children:
            if attribute_list_node.type != "attribute_list":
                continue
            for attribute_node in attribute_list_node.named_children:
                if attribute_node.type != "attribute":
                    continue
                name_node = attribute_node.child_by_field_name("name") or (
                    attribute_node.named_children[0] if attribute_node.named_children else None
                )
                attribute_name = self.text(name_node).strip().rsplit(".", 1)[-1]

                arguments: list[str] = []
                argument_list_node = find_child(attribute_node, "attribute_argument_list")
                if argument_list_node is not None:
                    for argument_node in argument_list_node.named_children:
                        if argument_node.type == "attribute_argument":
                            arguments.append(unquote_attribute_argument(self.text(argument_node).strip()))

                attributes.append(AttributeUsage(name=attribute_name, arguments=tuple(arguments)))
        return tuple(attributes)


# ============================================================
# Entry points
# ============================================================

def parse_source_text(
    source_text: str,
    source_file: Path | None = None,
    *,
    config: GeneratorConfig | None = None,
) -> SourceUnit:
    """Parse C# source text into a SourceUnit; syntax errors raise SourceParseError."""
    if config is None:
        config = GeneratorConfig()

    source_bytes = source_text.encode("utf-8")
    tree = create_csharp_parser().parse(source_bytes)

    if tree.root_node.has_error:
        error_node = find_first_error(tree.root_node)
        if error_node is not None:
            line_number, column_number = error_node.start_point
            raise SourceParseError(source_file, f"syntax error at {line_number + 1}:{column_number + 1}")
        raise SourceParseError(source_file, "syntax error")

    collector = DeclarationCollector(source_bytes, config)
    collector.visit_container(tree.root_node, None)
    return SourceUnit(
        source_file=source_file,
        classes=tuple(collector.classes),
        enums=tuple(collector.enums),
    )


def parse_source_file(source_file: Path, *, config: GeneratorConfig | None = None) -> SourceUnit:
    """Read and parse one .cs file."""
    try:
        source_text = source_file.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as decode_error:
        raise SourceParseError(source_file, f"not valid UTF-8 ({decode_error.reason})") from decode_error
    except OSError as os_error:
        raise SourceParseError(source_file, f"could not be read ({os_error.strerror or os_error})") from os_error
    return parse_source_text(source_text, source_file, config=config)
