"""CommandEngine — Parse, then Authorize, then Dispatch for one subject line."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from viamail.domain.errors import AuthorizationError, ParseError
from viamail.domain.protocol import CommandResponse
from viamail.domain.subject import parse_subject
from viamail.output.formatters import INVALID_COMMAND

if TYPE_CHECKING:
    from viamail.domain.protocol import CommandRequest, Principal
    from viamail.services.authorizer import Authorizer
    from viamail.services.dispatcher import Dispatcher

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Exchange:
    """What the engine made of one message.

    ``request`` is None when the subject did not parse; ``principal`` is
    None when parsing or authorization failed.
    """

    request: CommandRequest | None
    principal: Principal | None
    response: CommandResponse

    @property
    def command_name(self) -> str:
        return self.request.command_name if self.request is not None else INVALID_COMMAND


class CommandEngine:
    """Runs the command pipeline. A request never reaches the dispatcher
    before authorization succeeds."""

    def __init__(self, authorizer: Authorizer, dispatcher: Dispatcher) -> None:
        self.authorizer = authorizer
        self.dispatcher = dispatcher

    def handle(self, subject: str | None, sender: str) -> Exchange:
        try:
            request = parse_subject(subject, sender)
        except ParseError as exc:
            logger.info("command.rejected", sender=sender, kind=exc.kind, detail=exc.detail)
            return Exchange(None, None, CommandResponse.failure(INVALID_COMMAND, exc))

        try:
            principal = self.authorizer.authorize(request)
        except AuthorizationError as exc:
            logger.info(
                "command.denied", sender=sender, command=request.command_name, detail=exc.detail
            )
            return Exchange(request, None, CommandResponse.failure(request.command_name, exc))

        response = self.dispatcher.execute(request, principal)
        logger.info(
            "command.executed",
            sender=sender,
            command=request.command_name,
            status=str(response.status),
        )
        return Exchange(request, principal, response)
