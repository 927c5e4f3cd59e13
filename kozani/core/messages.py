"""
Message models for chat requests and language-model calls.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)


class ChatRole(Enum):
    """Roles a language-model message can carry."""
    USER = 1
    ASSISTANT = 2


@dataclass
class ChatMessage:
    """
    Wire representation of one conversation message.
    Serialized as ``{"role": ..., "content": ...}`` in the backend request.
    """
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class LanguageModelTextPart:
    value: str


@dataclass
class LanguageModelChatMessage:
    """A message handed to the language-model provider by the host."""
    role: ChatRole
    content: List[Any] = field(default_factory=list)
    name: Optional[str] = None

    @classmethod
    def user(cls, text: str) -> "LanguageModelChatMessage":
        return cls(role=ChatRole.USER, content=[LanguageModelTextPart(text)])

    @classmethod
    def assistant(cls, text: str) -> "LanguageModelChatMessage":
        return cls(role=ChatRole.ASSISTANT, content=[LanguageModelTextPart(text)])


def text_of(message: Union[str, LanguageModelChatMessage]) -> str:
    """Concatenate the text parts of a message; other parts count as ''."""
    if isinstance(message, str):
        return message
    return "".join(
        part.value if isinstance(part, LanguageModelTextPart) else ""
        for part in message.content
    )


def to_backend_messages(messages: Sequence[LanguageModelChatMessage]) -> List[ChatMessage]:
    """Flatten host messages into the backend's role/content format."""
    return [
        ChatMessage(
            role="user" if msg.role == ChatRole.USER else "assistant",
            content=text_of(msg),
        )
        for msg in messages
    ]


# ----------------------------------------------------------------------
# Chat participant request/response models
# ----------------------------------------------------------------------

@dataclass
class ChatRequest:
    """The user's latest input to a chat participant."""
    prompt: str
    command: Optional[str] = None


@dataclass
class ChatTurn:
    """One earlier exchange in the same chat session."""
    role: str
    content: str


@dataclass
class ChatContext:
    """Conversation state the host passes alongside a request."""
    history: List[ChatTurn] = field(default_factory=list)

    def add_turn(self, role: str, content: str) -> None:
        self.history.append(ChatTurn(role=role, content=content))
        logger.debug(f"Added turn: role={role}, content_len={len(content)}")

    def to_messages(self, prompt: str) -> List[ChatMessage]:
        """History turns (empty ones skipped) followed by the new prompt."""
        messages = [
            ChatMessage(role=turn.role, content=turn.content)
            for turn in self.history
            if turn.content
        ]
        messages.append(ChatMessage(role="user", content=prompt))
        return messages


@dataclass
class ChatResult:
    metadata: Dict[str, Any] = field(default_factory=dict)
