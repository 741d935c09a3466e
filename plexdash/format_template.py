from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Callable, Mapping

from .field_kinds import (
    INDEX_PREFIXES,
    KIND_ARRAY,
    KIND_COUNT,
    KIND_DURATION,
    KIND_FLAG,
    KIND_INDEX,
    KIND_PASSTHROUGH,
    KIND_STATE,
    KIND_TIMESTAMP,
    PRECOMPUTED_FIELDS,
    SHOW_MEDIA_TYPES,
    TIMESTAMP_FORMATS,
    field_kinds_for,
    kind_for,
)
from .record_normalization import lookup, media_type_of, normalize_record, same_field
from .value_formatters import (
    format_array,
    format_count,
    format_duration,
    format_flag,
    format_index,
    format_passthrough,
    format_state,
    format_timestamp,
)
from .variable_catalog import variable_names

DEFAULT_FORMAT_ARG = "default"
MAX_TEMPLATE_CHARS = 4000

TOKEN_PATTERN = re.compile(r"\{([^{}]+)\}")


@dataclass(frozen=True)
class Token:
    text: str
    key: str
    arg: str
    start: int
    end: int


def tokenize(template: str) -> list[Token]:
    if not isinstance(template, str):
        return []
    tokens: list[Token] = []
    for match in TOKEN_PATTERN.finditer(template):
        key, _, arg = match.group(1).partition(":")
        tokens.append(
            Token(
                text=match.group(0),
                key=key.strip(),
                arg=arg.strip() or DEFAULT_FORMAT_ARG,
                start=match.start(),
                end=match.end(),
            )
        )
    return tokens


def template_keys(template: str) -> list[str]:
    keys: list[str] = []
    for token in tokenize(template):
        if token.key and token.key not in keys:
            keys.append(token.key)
    return keys


@dataclass(frozen=True)
class _RenderScope:
    record: Mapping[str, Any]
    field_kinds: Mapping[str, str]
    show_context: bool
    now: datetime | None
    tz: tzinfo | None


def _format_timestamp_token(value: Any, token: Token, scope: _RenderScope) -> str:
    return format_timestamp(value, token.arg, now=scope.now, tz=scope.tz)


def _format_duration_token(value: Any, token: Token, scope: _RenderScope) -> str:
    return format_duration(value)


def _format_index_token(value: Any, token: Token, scope: _RenderScope) -> str:
    return format_index(value)


def _format_array_token(value: Any, token: Token, scope: _RenderScope) -> str:
    return format_array(value)


def _format_count_token(value: Any, token: Token, scope: _RenderScope) -> str:
    return format_count(value)


def _format_flag_token(value: Any, token: Token, scope: _RenderScope) -> str:
    return format_flag(value)


def _format_state_token(value: Any, token: Token, scope: _RenderScope) -> str:
    return format_state(value)


def _format_passthrough_token(value: Any, token: Token, scope: _RenderScope) -> str:
    return format_passthrough(value)


KIND_FORMATTERS: dict[str, Callable[[Any, Token, _RenderScope], str]] = {
    KIND_TIMESTAMP: _format_timestamp_token,
    KIND_DURATION: _format_duration_token,
    KIND_INDEX: _format_index_token,
    KIND_ARRAY: _format_array_token,
    KIND_COUNT: _format_count_token,
    KIND_FLAG: _format_flag_token,
    KIND_STATE: _format_state_token,
    KIND_PASSTHROUGH: _format_passthrough_token,
}


def _canonical_key(key: str) -> str:
    for canonical in (*PRECOMPUTED_FIELDS, *INDEX_PREFIXES):
        if same_field(key, canonical):
            return canonical
    return key


def _index_prefix(canonical: str, template: str, token: Token, scope: _RenderScope) -> str:
    prefix = INDEX_PREFIXES.get(canonical, "")
    if not prefix or not scope.show_context:
        return ""
    preceding = template[token.start - 1 : token.start] if token.start > 0 else ""
    if preceding.upper() == prefix:
        return ""
    return prefix


def _render_token(template: str, token: Token, scope: _RenderScope) -> str:
    kind = kind_for(token.key, scope.field_kinds)
    canonical = _canonical_key(token.key)

    precomputed = PRECOMPUTED_FIELDS.get(canonical)
    if precomputed is not None:
        field, applies_to = precomputed
        if applies_to is None or applies_to == token.arg:
            ready = scope.record.get(field)
            if ready:
                return format_passthrough(ready)

    value = lookup(scope.record, token.key)
    formatted = KIND_FORMATTERS[kind](value, token, scope)
    if kind == KIND_INDEX:
        formatted = _index_prefix(canonical, template, token, scope) + formatted
    return formatted


def render_details(
    template: Any,
    data: Any,
    *,
    field_kinds: Mapping[str, str] | None = None,
    category: str | None = None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> dict[str, Any]:
    """Substitute every token of ``template`` with its formatted value from ``data``.

    Never raises. A token whose formatter fails renders as an empty string and
    is reported under ``errors`` so the caller can log it; the rest of the
    template still renders.
    """
    if not isinstance(template, str) or not template:
        return {"ok": True, "text": "", "errors": []}

    record = normalize_record(data)
    scope = _RenderScope(
        record=record,
        field_kinds=field_kinds if field_kinds is not None else field_kinds_for(category),
        show_context=media_type_of(record) in SHOW_MEDIA_TYPES,
        now=now,
        tz=tz,
    )

    errors: list[dict[str, str]] = []
    pieces: list[str] = []
    cursor = 0
    for token in tokenize(template):
        pieces.append(template[cursor : token.start])
        try:
            pieces.append(_render_token(template, token, scope))
        except Exception as exc:
            errors.append({"token": token.text, "error": f"{type(exc).__name__}: {exc}"})
            pieces.append("")
        cursor = token.end
    pieces.append(template[cursor:])

    return {"ok": not errors, "text": "".join(pieces), "errors": errors}


def render(template: Any, data: Any, **kwargs: Any) -> str:
    return render_details(template, data, **kwargs)["text"]


def validate_template(template: Any, *, category: str | None = None) -> dict[str, Any]:
    errors: list[str] = []
    warnings: list[str] = []

    if not isinstance(template, str) or not template.strip():
        return {"valid": False, "errors": ["Template is empty."], "warnings": [], "keys": []}
    if len(template) > MAX_TEMPLATE_CHARS:
        errors.append(f"Template exceeds {MAX_TEMPLATE_CHARS} characters.")

    remainder = TOKEN_PATTERN.sub("", template)
    if "{" in remainder:
        warnings.append("Template has an unterminated '{'; it will be shown as literal text.")
    if "{}" in template:
        warnings.append("Template has an empty '{}' placeholder.")

    field_kinds = field_kinds_for(category)
    known: set[str] | None = None
    if category:
        known = variable_names(category)

    for token in tokenize(template):
        if not token.key:
            warnings.append(f"Placeholder {token.text} has no variable name.")
            continue
        if kind_for(token.key, field_kinds) == KIND_TIMESTAMP and token.arg not in TIMESTAMP_FORMATS:
            warnings.append(
                f"Unknown date format '{token.arg}' in {token.text}; expected one of {', '.join(TIMESTAMP_FORMATS)}."
            )
        if known is not None and token.key not in known:
            warnings.append(f"Variable '{token.key}' is not offered for {category} and may render empty.")

    return {
        "valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "keys": template_keys(template),
    }
