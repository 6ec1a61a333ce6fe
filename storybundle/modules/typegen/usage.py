from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from storybundle.modules.typegen.script_scan import RuntimeCall, iter_runtime_calls

TypeTag = Literal["string", "number", "boolean", "unknown[]", "object-map", "null", "undefined", "unknown"]
CallRole = Literal["set_variable", "get_variable", "flag"]

RUNTIME_RECEIVER = "runtime"

TYPE_TAG_RENDERING: dict[str, str] = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "unknown[]": "unknown[]",
    "object-map": "Record<string, unknown>",
    "null": "null",
    "undefined": "undefined",
    "unknown": "unknown",
}

_NAME_LITERAL_RE = re.compile(r"""^['"]([^'"]+)['"]$""")
_QUOTED_START_RE = re.compile(r"""^['"]""")
_NUMBER_LITERAL_RE = re.compile(r"^-?[0-9]+(\.[0-9]+)?$")
_ARITHMETIC_RE = re.compile(r"[+\-*/]")
_QUOTE_RE = re.compile(r"""['"]""")


@dataclass(frozen=True, slots=True)
class CallShape:
    role: CallRole
    arity: int


# Closed recognition surface: exact method names, exact arity, literal first argument.
RECOGNIZED_CALL_SHAPES: dict[str, CallShape] = {
    "setVariable": CallShape(role="set_variable", arity=2),
    "getVariable": CallShape(role="get_variable", arity=1),
    "hasFlag": CallShape(role="flag", arity=1),
    "setFlag": CallShape(role="flag", arity=1),
    "clearFlag": CallShape(role="flag", arity=1),
}


@dataclass(frozen=True, slots=True)
class RecognizedCall:
    role: CallRole
    name: str
    value_expr: str | None = None


def match_call_shape(call: RuntimeCall) -> RecognizedCall | None:
    shape = RECOGNIZED_CALL_SHAPES.get(call.method)
    if shape is None or len(call.args) != shape.arity:
        return None
    name_match = _NAME_LITERAL_RE.match(call.args[0])
    if name_match is None:
        return None
    value_expr = call.args[1] if shape.role == "set_variable" else None
    return RecognizedCall(role=shape.role, name=name_match.group(1), value_expr=value_expr)


def recognized_calls(script: str | None) -> list[RecognizedCall]:
    out: list[RecognizedCall] = []
    for call in iter_runtime_calls(script, receiver=RUNTIME_RECEIVER):
        recognized = match_call_shape(call)
        if recognized is not None:
            out.append(recognized)
    return out


def infer_type_from_expression(expr: str) -> TypeTag:
    """Best-effort type tag from the literal text of a value expression; first matching rule wins."""
    trimmed = str(expr or "").strip()
    if _QUOTED_START_RE.match(trimmed):
        return "string"
    if _NUMBER_LITERAL_RE.match(trimmed):
        return "number"
    if trimmed in {"true", "false"}:
        return "boolean"
    if trimmed.startswith("["):
        return "unknown[]"
    if trimmed.startswith("{"):
        return "object-map"
    if trimmed == "null":
        return "null"
    if trimmed == "undefined":
        return "undefined"
    if _ARITHMETIC_RE.search(trimmed) and not _QUOTE_RE.search(trimmed):
        return "number"
    return "unknown"


def collect_variable_usage(scripts: Iterable[str | None]) -> dict[str, list[TypeTag]]:
    usages: dict[str, list[TypeTag]] = {}
    for script in scripts:
        if not script:
            continue
        calls = recognized_calls(script)
        # Per script: every set-call registers before any get-call.
        for call in calls:
            if call.role != "set_variable":
                continue
            tags = usages.setdefault(call.name, [])
            tag = infer_type_from_expression(call.value_expr or "")
            if tag not in tags:
                tags.append(tag)
        for call in calls:
            if call.role == "get_variable" and call.name not in usages:
                usages[call.name] = ["unknown"]
    return usages


def collect_flag_usage(scripts: Iterable[str | None]) -> list[str]:
    flags: dict[str, None] = {}
    for script in scripts:
        if not script:
            continue
        for call in recognized_calls(script):
            if call.role == "flag":
                flags.setdefault(call.name, None)
    return list(flags)


def render_type_union(tags: Iterable[str]) -> str:
    return " | ".join(TYPE_TAG_RENDERING.get(tag, "unknown") for tag in tags)
