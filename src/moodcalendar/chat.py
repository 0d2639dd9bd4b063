"""Client for the chat relay endpoint.

The relay takes {"messages": [{role, content}, ...]} and answers
{"reply": "..."}. Any failure turns into FALLBACK_REPLY for the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

import requests

from .bus import CHAT_REPLY, EventBus
from .config import Config

_LOGGER = logging.getLogger(__name__)

ROLES = ("system", "user", "assistant")
FALLBACK_REPLY = "Sorry, I can't answer right now. Please try again in a moment."


@dataclass
class ChatReply:
    text: str
    ok: bool
    status: int | None = None


def validate_messages(messages: Iterable[Any]) -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for i, m in enumerate(messages):
        if not isinstance(m, dict):
            raise ValueError(f"message {i} must be an object")
        role, content = m.get("role"), m.get("content")
        if role not in ROLES:
            raise ValueError(f"message {i} has bad role {role!r}")
        if not isinstance(content, str):
            raise ValueError(f"message {i} content must be a string")
        out.append({"role": role, "content": content})
    return out


class ChatRelayClient:
    def __init__(self, url: str | None = None, timeout: float | None = None, session: requests.Session | None = None):
        self.url = url or Config.CHAT_URL
        self.timeout = timeout if timeout is not None else Config.CHAT_TIMEOUT
        self._http = session or requests

    def request(self, messages: Iterable[Any]) -> ChatReply:
        payload = {"messages": validate_messages(messages)}
        try:
            response = self._http.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException:
            _LOGGER.warning("Chat relay unreachable at %s", self.url, exc_info=True)
            return ChatReply(FALLBACK_REPLY, ok=False)

        status = response.status_code
        if not 200 <= status < 300:
            _LOGGER.warning("Chat relay error %s: %s", status, response.text[:200])
            return ChatReply(FALLBACK_REPLY, ok=False, status=status)

        try:
            data = response.json()
        except ValueError:
            _LOGGER.warning("Chat relay returned non-JSON body")
            return ChatReply(FALLBACK_REPLY, ok=False, status=status)

        reply = data.get("reply") if isinstance(data, dict) else None
        if not isinstance(reply, str) or not reply.strip():
            return ChatReply(FALLBACK_REPLY, ok=False, status=status)
        return ChatReply(reply.strip(), ok=True, status=status)

    def send(self, messages: Iterable[Any]) -> str:
        return self.request(messages).text


class ChatSession:
    """Running conversation; each answered turn is appended to the history."""

    def __init__(self, client: ChatRelayClient, bus: EventBus | None = None, system_prompt: str | None = None):
        self.client = client
        self.bus = bus
        self.history: list[dict[str, str]] = []
        if system_prompt:
            self.history.append({"role": "system", "content": system_prompt})

    def start_turn(self, text: str) -> list[dict[str, str]]:
        """Messages to send for `text`. Does not touch the history."""
        text = text.strip()
        if not text:
            raise ValueError("message is empty")
        return [*self.history, {"role": "user", "content": text}]

    def finish_turn(self, turn: list[dict[str, str]], reply: ChatReply) -> ChatReply:
        # failed turns are not kept, so a retry resends the same context
        if reply.ok:
            self.history = [*turn, {"role": "assistant", "content": reply.text}]
        if self.bus is not None:
            self.bus.emit(CHAT_REPLY, reply)
        return reply

    def ask(self, text: str) -> ChatReply:
        turn = self.start_turn(text)
        return self.finish_turn(turn, self.client.request(turn))
