"""
Notification sinks: where the chat session sends user-visible events.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from coderelay.tools.base import Recommendation
from coderelay.utils.logging import logger


class NotificationType(str, Enum):
    USER_MESSAGE = "userMessage"
    ASSISTANT_MESSAGE = "assistantMessage"
    UPDATE_MESSAGE = "updateMessage"
    ERROR = "error"
    CODE_RECOMMENDATION = "codeRecommendation"
    CLEAR_CHAT = "clearChat"


@dataclass
class Notification:
    """One event for the chat UI."""
    type: NotificationType
    content: str = ""
    streaming: bool = False
    request_id: Optional[str] = None
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"type": self.type.value, "content": self.content}
        if self.streaming:
            data["streaming"] = True
        if self.request_id:
            data["request_id"] = self.request_id
        if self.recommendations:
            data["recommendations"] = [rec.to_dict() for rec in self.recommendations]
        return data


class NotificationSink(ABC):
    """Receives everything the session wants the user to see."""

    @abstractmethod
    def post(self, notification: Notification) -> None:
        """Deliver one notification."""

    def post_user(self, text: str) -> None:
        self.post(Notification(NotificationType.USER_MESSAGE, text))

    def post_assistant(self, text: str, streaming: bool = False) -> None:
        kind = NotificationType.UPDATE_MESSAGE if streaming and text else NotificationType.ASSISTANT_MESSAGE
        self.post(Notification(kind, text, streaming=streaming))

    def post_error(self, text: str) -> None:
        self.post(Notification(NotificationType.ERROR, text))

    def post_recommendation_prompt(
        self, request_id: str, recommendations: list[Recommendation], summary: str
    ) -> None:
        self.post(
            Notification(
                NotificationType.CODE_RECOMMENDATION,
                summary,
                request_id=request_id,
                recommendations=list(recommendations),
            )
        )

    def post_clear(self) -> None:
        self.post(Notification(NotificationType.CLEAR_CHAT))


class QueueNotificationSink(NotificationSink):
    """
    Fans notifications out to subscriber queues.

    Each HTTP request that wants to see events subscribes for its own
    lifetime; with no subscribers notifications are dropped.
    """

    def __init__(self):
        self._subscribers: list[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def post(self, notification: Notification) -> None:
        if not self._subscribers:
            logger.debug(f"No subscribers for {notification.type.value} notification")
            return
        for queue in self._subscribers:
            queue.put_nowait(notification)


class ListNotificationSink(NotificationSink):
    """Collects notifications in memory, in order."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def post(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def of_type(self, kind: NotificationType) -> list[Notification]:
        return [n for n in self.notifications if n.type == kind]
