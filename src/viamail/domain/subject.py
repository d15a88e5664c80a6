"""Subject-line grammar: ``TOKEN`` or ``TOKEN[param, "quoted param", ...]``.

Quoted parameters are taken verbatim (no escapes) and may contain spaces
and commas. Bare parameters end at a comma or whitespace. Tokens equal to
``null`` in any case are dropped, as are empty quoted strings, so they
never reach a handler as placeholder values.
"""

from __future__ import annotations

import re

from viamail.domain.errors import ParseError
from viamail.domain.protocol import CommandRequest

COMMAND_PATTERN = re.compile(r"^([A-Z]+)(?:\[(.*)\])?$", re.DOTALL)
PARAM_PATTERN = re.compile(r'"([^"]*)"|([^,\s]+)')

USAGE_HINT = 'Use: COMANDO["param1","param2",param3]'


def parse_subject(subject: str | None, sender: str = "") -> CommandRequest:
    """Parse *subject* into a :class:`CommandRequest`.

    Raises:
        ParseError: blank subject, lower-case or malformed command token,
            unbalanced brackets, or an unterminated quote.
    """
    if subject is None or not subject.strip():
        raise ParseError("El asunto del correo está vacío")

    cleaned = subject.strip()
    match = COMMAND_PATTERN.match(cleaned)
    if match is None:
        raise ParseError(f"Formato de comando inválido. {USAGE_HINT}")

    command, raw_params = match.group(1), match.group(2)
    params = tokenize_parameters(raw_params) if raw_params else ()
    return CommandRequest(
        command_name=command,
        parameters=params,
        sender_address=sender,
        raw_subject=subject,
    )


def tokenize_parameters(raw: str) -> tuple[str, ...]:
    """Split the bracket body into parameter tokens, dropping ``null``."""
    tokens: list[str] = []
    for match in PARAM_PATTERN.finditer(raw):
        quoted, bare = match.group(1), match.group(2)
        if quoted is not None:
            token = quoted
        else:
            if '"' in bare:
                raise ParseError(f"Comillas sin cerrar en parámetro: {bare}")
            if "[" in bare or "]" in bare:
                raise ParseError(f"Corchetes desbalanceados en parámetro: {bare}")
            token = bare
        if not token or token.lower() == "null":
            continue
        tokens.append(token)
    return tuple(tokens)
