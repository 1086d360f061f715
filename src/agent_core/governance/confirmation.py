"""Interactive confirmation of governed tool calls.

A chat adapter that can ask a human for approval creates one
``ConfirmationManager``, turns it into a ``ConfirmationDelegate`` with
``delegate_for`` and routes the human's next reply to ``try_resolve``.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from agent_core.governance.models import ConfirmationDecision, ToolPermission
from agent_core.telemetry import (
    APPROVAL_DENIED,
    APPROVAL_GRANTED,
    APPROVAL_REQUIRED,
    APPROVAL_TIMED_OUT,
    get_logger,
)

log = get_logger(__name__)

DEFAULT_CONFIRMATION_TIMEOUT_SECONDS = 60.0

ConfirmationDelegate = Callable[[str, ToolPermission, dict[str, Any]], Awaitable[ConfirmationDecision]]
"""``(tool_name, permission, args) -> ConfirmationDecision``"""

PromptSender = Callable[[str, ToolPermission, dict[str, Any]], Awaitable[None] | None]

_APPROVING_REPLIES = frozenset({"yes", "y"})


class ConfirmationManager:
    """Tracks at most one pending confirmation per key (usually a chat id)."""

    def __init__(self, default_timeout_seconds: float = DEFAULT_CONFIRMATION_TIMEOUT_SECONDS) -> None:
        self.default_timeout_seconds = default_timeout_seconds
        self._pending: dict[str, asyncio.Future[ConfirmationDecision]] = {}

    async def request(self, key: str, timeout_seconds: float | None = None) -> ConfirmationDecision:
        """Wait for a reply on ``key``.

        A newer request for the same key rejects the older one.

        Args:
            key: Conversation the reply will arrive on.
            timeout_seconds: Overrides the default wait.

        Returns:
            The decision; a timeout is a rejection with reason
            "Confirmation timed out".
        """
        self._resolve_pending(
            key, ConfirmationDecision(approved=False, reason="Superseded by new confirmation request")
        )

        future: asyncio.Future[ConfirmationDecision] = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        timeout = self.default_timeout_seconds if timeout_seconds is None else timeout_seconds
        try:
            return await asyncio.wait_for(future, timeout)
        except TimeoutError:
            log.info(APPROVAL_TIMED_OUT, key=key, timeout_seconds=timeout)
            return ConfirmationDecision(approved=False, reason="Confirmation timed out")
        finally:
            if self._pending.get(key) is future:
                del self._pending[key]

    def try_resolve(self, key: str, text: str) -> bool:
        """Resolve the pending confirmation on ``key`` with a user reply.

        "yes" or "y" (any case, surrounding whitespace ignored) approves;
        anything else rejects with the reply as the reason.

        Returns:
            True if a confirmation was pending for the key.
        """
        if key not in self._pending:
            return False

        approved = text.strip().lower() in _APPROVING_REPLIES
        decision = ConfirmationDecision(
            approved=approved,
            reason=None if approved else f"User replied: {text}",
        )
        return self._resolve_pending(key, decision)

    def has_pending(self, key: str) -> bool:
        return key in self._pending

    def clear_all(self) -> None:
        """Reject every pending confirmation."""
        for key in list(self._pending):
            self._resolve_pending(key, ConfirmationDecision(approved=False, reason="Confirmation cleared"))

    def _resolve_pending(self, key: str, decision: ConfirmationDecision) -> bool:
        future = self._pending.pop(key, None)
        if future is None:
            return False
        if not future.done():
            future.set_result(decision)
        return True

    def delegate_for(self, key: str, send_prompt: PromptSender | None = None) -> ConfirmationDelegate:
        """Build a confirmation delegate bound to one conversation.

        Args:
            key: Conversation the human replies on.
            send_prompt: Called before waiting so the adapter can show the
                pending call to the human. May be sync or async.

        Returns:
            Delegate suitable for ``GovernedToolExecutor``.
        """

        async def confirm(
            tool_name: str, permission: ToolPermission, args: dict[str, Any]
        ) -> ConfirmationDecision:
            log.info(APPROVAL_REQUIRED, key=key, tool_name=tool_name, permission=permission.value)
            if send_prompt is not None:
                sent = send_prompt(tool_name, permission, args)
                if inspect.isawaitable(sent):
                    await sent
            decision = await self.request(key)
            log.info(
                APPROVAL_GRANTED if decision.approved else APPROVAL_DENIED,
                key=key,
                tool_name=tool_name,
                reason=decision.reason,
            )
            return decision

        return confirm
