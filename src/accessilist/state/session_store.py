"""File-backed session store.

One JSON file per session at ``<sessions_dir>/<KEY>.json``. Every operation
that touches a file holds an advisory ``fcntl`` lock on that file for its
whole duration: exclusive for create/write/delete, shared for reads. Requests
for different sessions never contend.

Writes replace the whole document. The only merge performed is on
``metadata``, where fields already on disk survive unless the incoming
document overrides them; ``metadata.lastModified`` is always restamped.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import re
import secrets
import string
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from accessilist.config.checklist_types import TypeRegistry, builtin_registry
from accessilist.state.migrations import resolve_type_slug, upgrade_document
from accessilist.state.schema import SCHEMA_VERSION, SessionDocument, SessionSummary
from accessilist.utils.errors import (
    ErrorCode,
    InvalidSessionKeyError,
    KeyGenerationError,
    SessionNotFoundError,
    SessionStoreError,
    ValidationError,
)
from accessilist.utils.time_provider import TimeProvider, get_default_time_provider, now_ms

logger = logging.getLogger(__name__)

SESSION_KEY_PATTERN = re.compile(r"[A-Za-z0-9\-]{3,20}")
KEY_ALPHABET = string.ascii_uppercase + string.digits
KEY_LENGTH = 3
MAX_KEY_ATTEMPTS = 100


class _KeyCollision(Exception):
    """Drawn key is reserved or already on disk."""


def validate_session_key(key: object) -> str:
    """Return ``key`` if it is a well-formed session key.

    Raises:
        InvalidSessionKeyError: For anything else. Checked before any path
            is built, so keys can never escape the sessions directory.
    """
    if not isinstance(key, str) or not SESSION_KEY_PATTERN.fullmatch(key):
        raise InvalidSessionKeyError(key)
    return key


@contextmanager
def _locked_file(path: Path, *, exclusive: bool, create: bool = False) -> Iterator[IO[bytes]]:
    """Open ``path`` without truncating it and hold an flock until exit."""
    if create:
        flags = os.O_RDWR | os.O_CREAT
    elif exclusive:
        flags = os.O_RDWR
    else:
        flags = os.O_RDONLY
    fd = os.open(path, flags, 0o644)
    with os.fdopen(fd, "rb" if flags == os.O_RDONLY else "r+b") as f:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        try:
            yield f
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def _rewrite(f: IO[bytes], document: dict[str, Any]) -> None:
    data = json.dumps(document, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    f.seek(0)
    f.truncate()
    f.write(data)
    f.flush()
    os.fsync(f.fileno())


def _decode(raw: bytes, path: Path) -> dict[str, Any]:
    try:
        document = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SessionStoreError(
            f"Failed to decode {path.name}: {e}", code=ErrorCode.E402_SESSION_CORRUPTED
        ) from e
    if not isinstance(document, dict):
        raise SessionStoreError(
            f"{path.name} does not contain a JSON object", code=ErrorCode.E402_SESSION_CORRUPTED
        )
    return document


class SessionStore:
    """Session persistence over a directory of JSON files.

    Args:
        sessions_dir: Directory holding ``<KEY>.json`` files. Created on demand.
        registry: Checklist type registry used for legacy type resolution
            and the reserved demo keys.
        time_provider: Clock for metadata timestamps.
        choice: Random choice function used for key generation.
    """

    def __init__(
        self,
        sessions_dir: str | os.PathLike[str],
        registry: TypeRegistry | None = None,
        time_provider: TimeProvider | None = None,
        choice: Callable[[str], str] | None = None,
    ) -> None:
        self.sessions_dir = Path(sessions_dir)
        self.registry = registry or builtin_registry()
        self._clock = time_provider or get_default_time_provider()
        self._choice = choice or secrets.choice

    @property
    def time_provider(self) -> TimeProvider:
        return self._clock

    def _ensure_dir(self) -> None:
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SessionStoreError(
                f"Failed to create sessions directory {self.sessions_dir}: {e}"
            ) from e

    def path_for(self, key: str) -> Path:
        return self.sessions_dir / f"{validate_session_key(key)}.json"

    def exists(self, key: str) -> bool:
        """True when the session file exists and has content."""
        path = self.path_for(key)
        try:
            return path.stat().st_size > 0
        except FileNotFoundError:
            return False

    def create(self, key: str, type_slug: str, state: dict[str, Any] | None = None) -> bool:
        """Write a placeholder document unless the session already has content.

        Returns:
            True if the document was written, False if it already existed.
        """
        path = self.path_for(key)
        self._ensure_dir()
        try:
            with _locked_file(path, exclusive=True, create=True) as f:
                f.seek(0, os.SEEK_END)
                if f.tell() > 0:
                    logger.debug("Session %s already exists", key)
                    return False
                _rewrite(
                    f,
                    {
                        "sessionKey": key,
                        "typeSlug": type_slug,
                        "metadata": {"version": SCHEMA_VERSION, "created": now_ms(self._clock)},
                        "state": state or {},
                    },
                )
        except OSError as e:
            raise SessionStoreError(f"Failed to create session {key}: {e}") from e

        logger.info("Created session %s (%s)", key, type_slug)
        return True

    def read(self, key: str) -> dict[str, Any]:
        """Return the stored document.

        Raises:
            SessionNotFoundError: If no file exists or it has no content yet.
            SessionStoreError: If the file cannot be read or decoded.
        """
        path = self.path_for(key)
        try:
            with _locked_file(path, exclusive=False) as f:
                raw = f.read()
        except FileNotFoundError as e:
            raise SessionNotFoundError(key) from e
        except OSError as e:
            raise SessionStoreError(f"Failed to read session {key}: {e}") from e

        if not raw:
            raise SessionNotFoundError(key)
        return _decode(raw, path)

    def write(self, key: str, document: dict[str, Any]) -> dict[str, Any]:
        """Replace the session document, merging metadata with what is on disk.

        Returns:
            The document as written.

        Raises:
            ValidationError: If the document lacks ``sessionKey`` or
                ``typeSlug``, or its ``metadata`` or ``state`` is malformed.
        """
        path = self.path_for(key)
        incoming = {k: v for k, v in document.items() if k != "type"}
        try:
            SessionDocument.model_validate(incoming)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Malformed session document for {key}",
                code=ErrorCode.E104_INVALID_STATE,
                details={"errors": e.error_count()},
            ) from e
        self._ensure_dir()
        incoming_metadata = incoming.get("metadata")
        if not isinstance(incoming_metadata, dict):
            incoming_metadata = {}

        try:
            with _locked_file(path, exclusive=True, create=True) as f:
                raw = f.read()
                existing_metadata: dict[str, Any] = {}
                if raw:
                    try:
                        existing = _decode(raw, path)
                    except SessionStoreError:
                        logger.warning("Overwriting undecodable session file %s", path.name)
                    else:
                        if isinstance(existing.get("metadata"), dict):
                            existing_metadata = existing["metadata"]

                metadata = {**existing_metadata, **incoming_metadata}
                metadata.setdefault("version", SCHEMA_VERSION)
                metadata.setdefault("created", now_ms(self._clock))
                metadata["lastModified"] = now_ms(self._clock)
                incoming["metadata"] = metadata

                _rewrite(f, incoming)
        except OSError as e:
            raise SessionStoreError(f"Failed to save session {key}: {e}") from e

        logger.debug("Saved session %s", key)
        return incoming

    def delete(self, key: str) -> None:
        """Remove the session file.

        Raises:
            SessionNotFoundError: If there is no file for ``key``.
        """
        path = self.path_for(key)
        try:
            with _locked_file(path, exclusive=True):
                path.unlink()
        except FileNotFoundError as e:
            raise SessionNotFoundError(key, "Instance not found") from e
        except OSError as e:
            raise SessionStoreError(f"Failed to delete session {key}: {e}") from e
        logger.info("Deleted session %s", key)

    def list(self, detailed: bool = False) -> list[SessionSummary]:
        """Summaries of every readable session, newest first by file mtime.

        Files that cannot be decoded are skipped with a warning.
        """
        if not self.sessions_dir.is_dir():
            return []

        summaries: list[SessionSummary] = []
        for path in self.sessions_dir.glob("*.json"):
            try:
                with _locked_file(path, exclusive=False) as f:
                    raw = f.read()
                    mtime_ms = int(os.fstat(f.fileno()).st_mtime * 1000)
                if not raw:
                    continue
                document = _decode(raw, path)
            except FileNotFoundError:
                # Deleted between glob and open
                continue
            except (OSError, SessionStoreError) as e:
                logger.warning("Skipping unreadable session file %s: %s", path.name, e)
                continue

            summaries.append(self._summarize(path.stem, document, mtime_ms, detailed))

        summaries.sort(key=lambda s: s.timestamp, reverse=True)
        return summaries

    def _summarize(
        self, key: str, document: dict[str, Any], mtime_ms: int, detailed: bool
    ) -> SessionSummary:
        stored_metadata = document.get("metadata")
        if not isinstance(stored_metadata, dict):
            stored_metadata = {}

        if detailed:
            created = stored_metadata.get("created") or mtime_ms
            metadata: dict[str, Any] = {
                "version": stored_metadata.get("version", SCHEMA_VERSION),
                "created": created,
            }
        else:
            created = mtime_ms
            metadata = {"version": SCHEMA_VERSION, "created": mtime_ms}

        if "lastModified" in stored_metadata:
            metadata["lastModified"] = stored_metadata["lastModified"]

        summary = SessionSummary(
            session_key=key,
            timestamp=mtime_ms,
            created=created,
            type_slug=resolve_type_slug(document, self.registry),
            metadata=metadata,
        )
        if detailed:
            summary.state = upgrade_document(document, self.registry)["state"]
        return summary

    @retry(
        stop=stop_after_attempt(MAX_KEY_ATTEMPTS),
        retry=retry_if_exception_type(_KeyCollision),
        reraise=True,
    )
    def _draw_unused_key(self, reserved: frozenset[str]) -> str:
        key = "".join(self._choice(KEY_ALPHABET) for _ in range(KEY_LENGTH))
        if key in reserved or (self.sessions_dir / f"{key}.json").exists():
            raise _KeyCollision(key)
        return key

    def generate_key(self, reserved: Iterable[str] | None = None) -> str:
        """Draw a fresh three-character key.

        The key is neither reserved nor backed by an existing file. It is not
        claimed on disk; the caller instantiates it.

        Raises:
            KeyGenerationError: After ``MAX_KEY_ATTEMPTS`` collisions.
        """
        reserved_keys = (
            frozenset(reserved) if reserved is not None else self.registry.reserved_keys
        )
        try:
            return self._draw_unused_key(reserved_keys)
        except _KeyCollision as e:
            raise KeyGenerationError(MAX_KEY_ATTEMPTS) from e
