"""Declarations extracted from C# sources, grouped by namespace."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Literal, Mapping

from cststypegen.type_mapper import TypeRegistry


ClassKind = Literal["class", "struct", "record", "interface"]


# ============================================================
# Declarations
# ============================================================

@dataclass(frozen=True)
class AttributeUsage:
    """An attribute applied to a member, e.g. [Obsolete("Use X")]."""
    name: str
    arguments: tuple[str, ...] = ()


@dataclass(frozen=True)
class MemberDeclaration:
    """A property-shaped member of a class-like declaration."""
    name: str
    type_expression: str
    attributes: tuple[AttributeUsage, ...] = ()
    documentation_trivia: tuple[str, ...] = ()

    def find_attribute(self, attribute_names: Iterable[str]) -> AttributeUsage | None:
        """Return the first attribute whose name is in attribute_names."""
        wanted_names = set(attribute_names)
        for attribute in self.attributes:
            if attribute.name in wanted_names:
                return attribute
        return None


@dataclass(frozen=True)
class ClassDeclaration:
    """A class, struct, record or interface, with the declarations nested in it."""
    name: str
    namespace: str
    kind: ClassKind = "class"
    type_parameters: tuple[str, ...] = ()
    members: tuple[MemberDeclaration, ...] = ()
    documentation_trivia: tuple[str, ...] = ()
    nested_declarations: tuple["ClassDeclaration", ...] = ()


@dataclass(frozen=True)
class EnumDeclaration:
    """An enum; member order is declaration order."""
    name: str
    namespace: str
    members: tuple[str, ...] = ()
    documentation_trivia: tuple[str, ...] = ()


@dataclass(frozen=True)
class SourceUnit:
    """Declarations parsed from one source file, in declaration order."""
    source_file: Path | None
    classes: tuple[ClassDeclaration, ...] = ()
    enums: tuple[EnumDeclaration, ...] = ()


@dataclass(frozen=True)
class NamespaceGroup:
    """Declarations placed directly in one namespace path."""
    namespace: str
    enums: tuple[EnumDeclaration, ...] = ()
    classes: tuple[ClassDeclaration, ...] = ()

    @property
    def segments(self) -> list[str]:
        return self.namespace.split(".")


# ============================================================
# Accumulation
# ============================================================

def iter_nested_declarations(class_declaration: ClassDeclaration) -> Iterator[tuple[ClassDeclaration, ClassDeclaration]]:
    """Yield (owner, nested) pairs depth-first, in declaration order."""
    for nested_declaration in class_declaration.nested_declarations:
        yield class_declaration, nested_declaration
        yield from iter_nested_declarations(nested_declaration)


@dataclass(frozen=True)
class DeclarationSet:
    """
    Immutable accumulation of parsed source units.

    merge() returns a new value; namespaces keep first-encounter order and the
    declarations inside each namespace keep input order.
    """
    namespace_order: tuple[str, ...] = ()
    classes_by_namespace: Mapping[str, tuple[ClassDeclaration, ...]] = field(default_factory=dict)
    enums_by_namespace: Mapping[str, tuple[EnumDeclaration, ...]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "DeclarationSet":
        return cls()

    @classmethod
    def from_units(cls, source_units: Iterable[SourceUnit]) -> "DeclarationSet":
        declaration_set = cls.empty()
        for source_unit in source_units:
            declaration_set = declaration_set.merge(source_unit)
        return declaration_set

    def merge(self, source_unit: SourceUnit) -> "DeclarationSet":
        """Fold one source unit into a new declaration set."""
        namespace_order = list(self.namespace_order)
        classes_by_namespace = dict(self.classes_by_namespace)
        enums_by_namespace = dict(self.enums_by_namespace)

        for enum_declaration in source_unit.enums:
            if enum_declaration.namespace not in namespace_order:
                namespace_order.append(enum_declaration.namespace)
            enums_by_namespace[enum_declaration.namespace] = (
                *enums_by_namespace.get(enum_declaration.namespace, ()),
                enum_declaration,
            )

        for class_declaration in source_unit.classes:
            if class_declaration.namespace not in namespace_order:
                namespace_order.append(class_declaration.namespace)
            classes_by_namespace[class_declaration.namespace] = (
                *classes_by_namespace.get(class_declaration.namespace, ()),
                class_declaration,
            )

        return DeclarationSet(
            namespace_order=tuple(namespace_order),
            classes_by_namespace=classes_by_namespace,
            enums_by_namespace=enums_by_namespace,
        )

    @property
    def is_empty(self) -> bool:
        return not self.namespace_order

    def namespace_groups(self) -> list[NamespaceGroup]:
        return [
            NamespaceGroup(
                namespace=namespace,
                enums=self.enums_by_namespace.get(namespace, ()),
                classes=self.classes_by_namespace.get(namespace, ()),
            )
            for namespace in self.namespace_order
        ]

    def type_registry(self) -> TypeRegistry:
        """Collect enum names and nested-type ownership for name resolution."""
        enum_names: set[str] = set()
        nested_type_names_by_owner: dict[str, set[str]] = {}

        for enum_declarations in self.enums_by_namespace.values():
            enum_names.update(enum_declaration.name for enum_declaration in enum_declarations)

        for class_declarations in self.classes_by_namespace.values():
            for class_declaration in class_declarations:
                for owner, nested_declaration in iter_nested_declarations(class_declaration):
                    nested_type_names_by_owner.setdefault(owner.name, set()).add(nested_declaration.name)

        return TypeRegistry(
            enum_names=frozenset(enum_names),
            nested_type_names_by_owner={
                owner_name: frozenset(nested_names)
                for owner_name, nested_names in nested_type_names_by_owner.items()
            },
        )
