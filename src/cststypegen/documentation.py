"""
Normalize C# documentation comments into JSDoc-ready lines.

Structured (``///`` XML) comments contribute their <summary>, every <code>
sample found anywhere in the comment, and <remarks> when the remarks are not
just a worked example. Plain ``//`` and ``/* */`` comments are used as-is when
no structured comment exists.
"""
from __future__ import annotations

import html
import re
import textwrap
from dataclasses import dataclass
from typing import Sequence

from cststypegen.config import GeneratorConfig


STRUCTURED_COMMENT_PREFIX = "///"

STRUCTURED_MARKER_REGEX = re.compile(r"^\s*///\s?")
SUMMARY_REGEX = re.compile(r"<summary\b[^>]*>(.*?)</summary\s*>", re.DOTALL)
REMARKS_REGEX = re.compile(r"<remarks\b[^>]*>(.*?)</remarks\s*>", re.DOTALL)
CODE_REGEX = re.compile(r"<code\b[^>]*>(.*?)</code\s*>", re.DOTALL)
CODE_OPENING_REGEX = re.compile(r"<code\b")

REFERENCE_TAG_REGEX = re.compile(r'<(?:see|seealso)\s+(?:cref|href|langword)\s*=\s*"([^"]*)"\s*/>')
NAME_REFERENCE_TAG_REGEX = re.compile(r'<(?:paramref|typeparamref)\s+name\s*=\s*"([^"]*)"\s*/>')
ANY_TAG_REGEX = re.compile(r"<[^>]+>")


# ============================================================
# Documentation block
# ============================================================

@dataclass(frozen=True)
class CodeSample:
    """An embedded <code> example, rendered as a fenced block."""
    language: str
    lines: tuple[str, ...]

    def fenced_lines(self) -> list[str]:
        return [f"```{self.language}", *self.lines, "```"]


@dataclass(frozen=True)
class DocumentationBlock:
    """Normalized documentation for one declaration or member."""
    summary: tuple[str, ...] = ()
    code_samples: tuple[CodeSample, ...] = ()
    remarks: tuple[str, ...] = ()
    remarks_introduction: str = "Remarks:"

    @property
    def is_empty(self) -> bool:
        return not (self.summary or self.code_samples or self.remarks)

    def to_lines(self) -> list[str]:
        """Render summary, code samples, then remarks, separated by blank lines."""
        output_lines: list[str] = list(self.summary)
        for code_sample in self.code_samples:
            if output_lines:
                output_lines.append("")
            output_lines.extend(code_sample.fenced_lines())
        if self.remarks:
            if output_lines:
                output_lines.append("")
            output_lines.append(self.remarks_introduction)
            output_lines.extend(self.remarks)
        return output_lines


# ============================================================
# Text helpers
# ============================================================

def display_name_for_reference(reference: str) -> str:
    """'T:MyApp.Models.User' -> 'User', 'M:Foo.Bar(System.Int32)' -> 'Bar'."""
    without_kind = reference.split(":", 1)[-1] if re.match(r"^[A-Z]:", reference) else reference
    without_parameters = without_kind.split("(", 1)[0]
    return without_parameters.rsplit(".", 1)[-1]


def trim_blank_edges(lines: list[str]) -> list[str]:
    start_index = 0
    end_index = len(lines)
    while start_index < end_index and not lines[start_index].strip():
        start_index += 1
    while end_index > start_index and not lines[end_index - 1].strip():
        end_index -= 1
    return lines[start_index:end_index]


def flatten_documentation_text(xml_text: str) -> list[str]:
    """Strip tags from a documentation section; inline references keep their names."""
    text = REFERENCE_TAG_REGEX.sub(lambda match: display_name_for_reference(match.group(1)), xml_text)
    text = NAME_REFERENCE_TAG_REGEX.sub(lambda match: match.group(1), text)
    text = ANY_TAG_REGEX.sub("", text)
    text = html.unescape(text)
    return trim_blank_edges([line.strip() for line in text.splitlines()])


def extract_code_sample(code_content: str, language: str) -> CodeSample:
    """Dedent a <code> body and collapse its leading/trailing blank lines."""
    code_lines = [html.unescape(line.rstrip()) for line in code_content.splitlines()]
    code_lines = trim_blank_edges(code_lines)
    dedented = textwrap.dedent("\n".join(code_lines))
    return CodeSample(language=language, lines=tuple(dedented.splitlines()) if dedented else ())


def strip_plain_comment(comment_text: str) -> list[str]:
    """Remove // or /* */ markers from a plain comment."""
    stripped = comment_text.strip()
    if stripped.startswith("/*"):
        body = stripped[2:]
        if body.endswith("*/"):
            body = body[:-2]
        body_lines = [line.strip() for line in body.splitlines()]
        body_lines = [line[1:].strip() if line.startswith("*") else line for line in body_lines]
        return trim_blank_edges(body_lines)
    return [stripped.lstrip("/").strip()]


# ============================================================
# Extraction
# ============================================================

def extract_structured_documentation(
    structured_lines: list[str],
    config: GeneratorConfig,
) -> DocumentationBlock:
    """Build a block from the text of /// comment lines."""
    documentation_text = "\n".join(STRUCTURED_MARKER_REGEX.sub("", line) for line in structured_lines)

    summary_lines: list[str] = []
    summary_match = SUMMARY_REGEX.search(documentation_text)
    if summary_match is not None:
        summary_lines = flatten_documentation_text(summary_match.group(1))
    elif not ANY_TAG_REGEX.search(documentation_text):
        summary_lines = flatten_documentation_text(documentation_text)

    code_samples = tuple(
        extract_code_sample(code_match.group(1), config.code_sample_language)
        for code_match in CODE_REGEX.finditer(documentation_text)
    )

    # Remarks whose content is a code sample are already covered by code_samples
    remarks_lines: list[str] = []
    remarks_match = REMARKS_REGEX.search(documentation_text)
    if remarks_match is not None and not CODE_OPENING_REGEX.search(remarks_match.group(1)):
        remarks_lines = flatten_documentation_text(remarks_match.group(1))

    return DocumentationBlock(
        summary=tuple(summary_lines),
        code_samples=code_samples,
        remarks=tuple(remarks_lines),
        remarks_introduction=config.remarks_introduction,
    )


def extract_documentation(
    documentation_trivia: Sequence[str],
    *,
    config: GeneratorConfig | None = None,
) -> DocumentationBlock | None:
    """
    Normalize the comments preceding a declaration.

    Returns None when there is no comment at all, so callers can tell
    "undocumented" apart from "documented with nothing useful".
    """
    if config is None:
        config = GeneratorConfig()
    if not documentation_trivia:
        return None

    structured_lines: list[str] = []
    for comment_text in documentation_trivia:
        for line in comment_text.splitlines():
            if line.strip().startswith(STRUCTURED_COMMENT_PREFIX):
                structured_lines.append(line)
    if structured_lines:
        return extract_structured_documentation(structured_lines, config)

    plain_lines: list[str] = []
    for comment_text in documentation_trivia:
        plain_lines.extend(strip_plain_comment(comment_text))
    return DocumentationBlock(summary=tuple(plain_lines), remarks_introduction=config.remarks_introduction)
