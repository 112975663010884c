"""
Invalidation Coordinator - keeps cached match results fresh on entity change.

Blanket mode (default):
    student S changed -> list:student:S, score:S:*, every list:project:*
    project P changed -> list:project:P, score:*:P, every list:student:*

Targeted mode replaces the "every list on the other axis" step with the
reverse indexes written by the orchestrator (idx:student:S / idx:project:P).
If an index cannot be read, the coordinator falls back to blanket deletion
for that event.
"""
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from core.cache.keys import (
    ALL_PROJECT_LISTS_PATTERN,
    ALL_STUDENT_LISTS_PATTERN,
    project_index_key,
    project_list_key,
    project_scores_pattern,
    student_index_key,
    student_list_key,
    student_scores_pattern,
)
from core.cache.match_cache import ResultCache
from core.config_loader import InvalidationMode

logger = logging.getLogger(__name__)

STUDENT_PROFILE_UPDATED = "studentProfileUpdated"
PROJECT_UPDATED = "projectUpdated"


@dataclass
class InvalidationReport:
    """What one invalidation removed."""
    entity_type: str
    entity_id: str
    mode: InvalidationMode
    own_list_deleted: bool = False
    scores_deleted: int = 0
    lists_deleted: int = 0
    used_blanket_fallback: bool = False

    @property
    def total_deleted(self) -> int:
        return int(self.own_list_deleted) + self.scores_deleted + self.lists_deleted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "mode": self.mode.value,
            "own_list_deleted": self.own_list_deleted,
            "scores_deleted": self.scores_deleted,
            "lists_deleted": self.lists_deleted,
            "used_blanket_fallback": self.used_blanket_fallback,
            "total_deleted": self.total_deleted,
        }


@dataclass(frozen=True)
class EntityEvent:
    """Mutation event fired by the CRUD layer."""
    name: str
    entity_id: str

    @classmethod
    def from_message(cls, data: Union[str, bytes, Dict[str, Any]]) -> "EntityEvent":
        """Decode a JSON event: {"event": name, "entityId": id}.

        "studentId" / "projectId" are accepted in place of "entityId".

        Raises:
            ValueError: if the payload is not a valid event.
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ValueError(f"Event is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Event must be a JSON object, got {type(data).__name__}")

        name = data.get("event")
        entity_id = data.get("entityId") or data.get("studentId") or data.get("projectId")
        if not name or entity_id is None or entity_id == "":
            raise ValueError(f"Event is missing 'event' or entity id: {data}")

        return cls(name=str(name), entity_id=str(entity_id))

    def to_json(self) -> str:
        return json.dumps({"event": self.name, "entityId": self.entity_id})


class InvalidationCoordinator:
    """Translates entity mutations into ResultCache deletions."""

    def __init__(self, cache: ResultCache, mode: InvalidationMode = InvalidationMode.BLANKET):
        self.cache = cache
        self.mode = InvalidationMode(mode)

    def on_student_changed(self, student_id: str) -> InvalidationReport:
        report = InvalidationReport("student", student_id, self.mode)
        report.own_list_deleted = self.cache.delete_key(student_list_key(student_id))
        report.scores_deleted = self.cache.delete_pattern(student_scores_pattern(student_id))
        self._delete_opposite_lists(
            report, student_index_key(student_id), ALL_PROJECT_LISTS_PATTERN
        )
        self._log(report)
        return report

    def on_project_changed(self, project_id: str) -> InvalidationReport:
        report = InvalidationReport("project", project_id, self.mode)
        report.own_list_deleted = self.cache.delete_key(project_list_key(project_id))
        report.scores_deleted = self.cache.delete_pattern(project_scores_pattern(project_id))
        self._delete_opposite_lists(
            report, project_index_key(project_id), ALL_STUDENT_LISTS_PATTERN
        )
        self._log(report)
        return report

    def _delete_opposite_lists(
        self,
        report: InvalidationReport,
        index_key: str,
        blanket_pattern: str
    ) -> None:
        if self.mode == InvalidationMode.TARGETED:
            list_keys = self.cache.pop_index(index_key)
            if list_keys is not None:
                report.lists_deleted = sum(1 for key in list_keys if self.cache.delete_key(key))
                return
            logger.warning(f"Reverse index {index_key} unreadable, falling back to blanket invalidation")
            report.used_blanket_fallback = True

        report.lists_deleted = self.cache.delete_pattern(blanket_pattern)

    @staticmethod
    def _log(report: InvalidationReport) -> None:
        logger.info(
            f"Invalidated {report.entity_type} {report.entity_id} ({report.mode.value}): "
            f"own_list={report.own_list_deleted}, scores={report.scores_deleted}, "
            f"lists={report.lists_deleted}"
        )

    def handle_event(self, event: EntityEvent) -> Optional[InvalidationReport]:
        """Dispatch a mutation event. Unknown event names are logged and ignored."""
        if event.name == STUDENT_PROFILE_UPDATED:
            return self.on_student_changed(event.entity_id)
        if event.name == PROJECT_UPDATED:
            return self.on_project_changed(event.entity_id)

        logger.warning(f"Ignoring unknown entity event: {event.name}")
        return None

    def clear_all(self) -> int:
        return self.cache.clear_all()


class InvalidationListener:
    """
    Redis pub/sub subscriber feeding entity events to the coordinator.

    Runs on a daemon thread; stop() signals the loop and joins it.
    """

    def __init__(
        self,
        coordinator: InvalidationCoordinator,
        redis_client: Any,
        channel: str,
        poll_timeout: float = 1.0
    ):
        self.coordinator = coordinator
        self.redis_client = redis_client
        self.channel = channel
        self.poll_timeout = poll_timeout
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def handle_message(self, message: Optional[Dict[str, Any]]) -> Optional[InvalidationReport]:
        """Process one pub/sub message. Malformed payloads are logged and skipped."""
        if not message or message.get("type") != "message":
            return None

        try:
            event = EntityEvent.from_message(message.get("data"))
        except ValueError as e:
            logger.warning(f"Skipping malformed event on {self.channel}: {e}")
            return None

        return self.coordinator.handle_event(event)

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Blocking subscribe loop; returns once stop_event is set."""
        stop_event = stop_event or self._stop_event
        pubsub = self.redis_client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(self.channel)
        logger.info(f"Listening for entity events on {self.channel}")

        try:
            while not stop_event.is_set():
                try:
                    message = pubsub.get_message(timeout=self.poll_timeout)
                except Exception as e:
                    logger.warning(f"Event subscription error on {self.channel}: {e}")
                    stop_event.wait(self.poll_timeout)
                    continue
                self.handle_message(message)
        finally:
            pubsub.close()
            logger.info(f"Stopped listening on {self.channel}")

    def start(self) -> threading.Thread:
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def publish(self, event: EntityEvent) -> int:
        """Publish an event on the channel. Returns the number of receivers."""
        return self.redis_client.publish(self.channel, event.to_json())
