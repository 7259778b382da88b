"""Generate TypeScript declaration files from C# source trees."""
from __future__ import annotations

from cststypegen.config import GeneratorConfig
from cststypegen.documentation import DocumentationBlock, extract_documentation
from cststypegen.emitter import render_typescript
from cststypegen.type_mapper import ResolutionContext, TypeRegistry, map_type

__all__ = [
    "DocumentationBlock",
    "GeneratorConfig",
    "ResolutionContext",
    "TypeRegistry",
    "extract_documentation",
    "map_type",
    "render_typescript",
]

__version__ = "0.1.0"
