"""
Ticket External Service Adapters
=================================

Adapters for external services used by the ticket module:
- LLM-backed triage assistant
- Email notification sender
- YAML routing config with hot reload (watchdog)

Implements the ports defined in the application layer.
"""

import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from triagedesk.config import settings
from triagedesk.core import ConfigurationException, LLMException, NotificationException
from triagedesk.infrastructure.llm import ILLMClient
from triagedesk.infrastructure.mail import IEmailTransport, OutgoingEmail
from triagedesk.shared.infrastructure.logging import get_logger
from triagedesk.tickets.application import INotificationSender, ITriageAssistant
from triagedesk.tickets.domain import (
    ChatTurn,
    Notification,
    RoutingConfig,
    TriagePromptBuilder,
    TriageReply,
    split_history,
)

logger = get_logger(__name__)


class LLMTriageAssistant(ITriageAssistant):
    """
    Triage assistant backed by a chat-completion model.

    Sends ``[system, *context, latest user turn]`` and reads the category out
    of the first bracketed label in the reply.
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        labels: Optional[Sequence[str]] = None,
        labels_provider: Optional[Callable[[], Sequence[str]]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ):
        self._llm = llm_client
        static_labels = list(labels or RoutingConfig().category_labels)
        self._labels_provider = labels_provider or (lambda: static_labels)
        self._temperature = settings.llm_temperature if temperature is None else temperature
        self._max_tokens = max_tokens or settings.llm_max_tokens

    @property
    def labels(self) -> List[str]:
        """Labels offered to the model, read fresh so config reloads apply."""
        return list(self._labels_provider())

    def build_messages(self, history: Sequence[ChatTurn]) -> List[dict]:
        """Convert a client history into the chat-completion message list."""
        context, latest = split_history(history)

        messages = [
            {"role": "system", "content": TriagePromptBuilder.build_system_prompt(self.labels)}
        ]
        messages.extend({"role": turn.role.value, "content": turn.content} for turn in context)
        messages.append({"role": "user", "content": latest.content})
        return messages

    async def classify_and_reply(self, history: Sequence[ChatTurn]) -> TriageReply:
        """
        Generate the next triage reply.

        Raises:
            ValidationException: If the history holds no user turn
            LLMException: If the model call fails
        """
        messages = self.build_messages(history)

        try:
            response = await self._llm.chat_completion(
                messages=messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                operation="triage"
            )
        except LLMException:
            raise
        except Exception as e:
            raise LLMException(f"Triage reply failed: {e}")

        return TriageReply(
            reply_text=response.content,
            category=TriagePromptBuilder.extract_category(response.content)
        )


class EmailNotificationSender(INotificationSender):
    """
    Sends notifications through an email transport.

    One attempt per call: no queue and no retry. Failures are logged and
    raised as NotificationException.
    """

    def __init__(self, transport: IEmailTransport):
        self._transport = transport

    async def send(self, notification: Notification) -> None:
        email = OutgoingEmail(
            to=notification.to,
            subject=notification.subject,
            text=notification.text
        )

        try:
            message_id = await self._transport.send(email)
        except Exception as e:
            logger.error(
                "Notification failed",
                extra={"to": notification.to, "subject": notification.subject, "error": str(e)}
            )
            raise NotificationException(
                f"Sending '{notification.subject}' failed: {e}",
                {"to": notification.to}
            )

        logger.info(
            "Notification sent",
            extra={"to": notification.to, "subject": notification.subject, "message_id": message_id}
        )


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for routing config file changes."""

    def __init__(self, config_manager: "RoutingConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info(f"Routing config changed: {event.src_path}")
            self.config_manager.reload()


class RoutingConfigManager:
    """
    Thread-safe routing configuration manager with hot-reload support.

    Uses watchdog to monitor file changes and reload configuration
    without restarting the service.
    """

    def __init__(self):
        self._config: Optional[RoutingConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> RoutingConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: If the file exists but is invalid
        """
        self._path = Path(path)
        try:
            config = self._load_from_file(self._path)
        except Exception as e:
            raise ConfigurationException(f"Invalid routing config {self._path}: {e}")
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> RoutingConfig:
        if not path.exists():
            logger.warning(f"Routing config file not found: {path}, using defaults")
            return RoutingConfig()

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return RoutingConfig(**data)

    def reload(self) -> bool:
        """Reload configuration from file; keeps the old config on failure."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except Exception as e:
            logger.error(f"Failed to reload routing config: {e}")
            return False

        with self._lock:
            self._config = new_config
        logger.info("Routing configuration reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skipped when the file doesn't exist or the platform can't watch files.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(f"Routing config doesn't exist, skipping file watch: {self._path}")
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent.resolve()), recursive=False)
            self._observer.start()
            logger.info(f"Started watching routing config: {self._path}")
        except OSError as e:
            logger.warning(f"File watching not available, using static config: {e}")
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def config(self) -> RoutingConfig:
        with self._lock:
            if self._config is None:
                raise RuntimeError("Routing configuration not loaded")
            return self._config
