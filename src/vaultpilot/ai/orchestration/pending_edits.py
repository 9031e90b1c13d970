"""Store of proposed file edits awaiting the user's decision."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from ...services.document_cache import DocumentCache
from ...services.vault import VaultAdapter
from ..tools.diff_builder import DiffBuilderTool

LOGGER = logging.getLogger(__name__)


class PendingEditApplyError(RuntimeError):
    """Raised when an approved edit could not be written; the edit stays pending."""

    def __init__(self, edit: "PendingEdit", cause: BaseException) -> None:
        super().__init__(str(cause) or cause.__class__.__name__)
        self.edit = edit
        self.cause = cause


@dataclass(frozen=True, slots=True)
class PendingEdit:
    id: str
    path: str
    new_content: str
    old_content: str
    diff: str


def _new_edit_id() -> str:
    return f"edit-{uuid.uuid4().hex[:12]}"


class PendingEditStore:
    """Tracks proposals from ``edit_file`` until they are applied or rejected.

    Several proposals may be open at once, including more than one for the
    same path; resolving one never touches the others. Nothing reaches the
    cache or disk until :meth:`apply`.
    """

    def __init__(
        self,
        adapter: VaultAdapter,
        cache: DocumentCache,
        *,
        diff_builder: DiffBuilderTool | None = None,
    ) -> None:
        self._adapter = adapter
        self._cache = cache
        self._diff_builder = diff_builder or DiffBuilderTool()
        self._edits: dict[str, PendingEdit] = {}

    def propose(self, path: str, new_content: str, old_content: str) -> PendingEdit:
        diff = self._diff_builder.run(old_content, new_content, filename=path)
        edit = PendingEdit(
            id=_new_edit_id(), path=path, new_content=new_content, old_content=old_content, diff=diff
        )
        self._edits[edit.id] = edit
        LOGGER.debug("Proposed edit %s for %s (%d diff chars)", edit.id, path, len(diff))
        return edit

    def get(self, edit_id: str) -> PendingEdit | None:
        return self._edits.get(edit_id)

    def pending(self) -> list[PendingEdit]:
        return list(self._edits.values())

    def __contains__(self, edit_id: object) -> bool:
        return edit_id in self._edits

    def __len__(self) -> int:
        return len(self._edits)

    async def apply(self, edit_id: str) -> PendingEdit | None:
        """Write the proposal to disk, then to the cache, then drop it.

        Returns ``None`` for unknown ids. Raises :class:`PendingEditApplyError`
        when the write fails, leaving the proposal pending so it can be retried.
        """

        edit = self._edits.get(edit_id)
        if edit is None:
            LOGGER.debug("Ignoring apply for unknown edit %s", edit_id)
            return None
        try:
            await self._adapter.write_text_file(edit.path, edit.new_content)
        except Exception as exc:
            LOGGER.warning("Failed to apply edit %s to %s: %s", edit.id, edit.path, exc)
            raise PendingEditApplyError(edit, exc) from exc
        self._cache.set(edit.path, edit.new_content)
        self._cache.mark_saved(edit.path)
        self._edits.pop(edit_id, None)
        LOGGER.info("Applied edit %s to %s", edit.id, edit.path)
        return edit

    def reject(self, edit_id: str) -> PendingEdit | None:
        edit = self._edits.pop(edit_id, None)
        if edit is None:
            LOGGER.debug("Ignoring reject for unknown edit %s", edit_id)
            return None
        LOGGER.info("Rejected edit %s for %s", edit.id, edit.path)
        return edit


__all__ = ["PendingEdit", "PendingEditApplyError", "PendingEditStore"]
