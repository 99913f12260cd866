"""
Application executor.
Writes stored recommendations to disk when the user accepts them.
"""

from coderelay.engine.store import RecommendationStore
from coderelay.tools.base import ApplyResult, FileIO, Recommendation
from coderelay.utils.logging import logger

APPLY_ALL = "*"

NO_RECOMMENDATIONS = "No code recommendations found for this request."


class ApplicationExecutor:
    """
    Applies or rejects the pending recommendations of a request.

    Apply-all writes every file independently and always evicts the request
    afterwards. Apply-one writes a single exact-path match and removes it
    from the set once written.
    """

    def __init__(self, store: RecommendationStore, file_io: FileIO):
        self.store = store
        self.file_io = file_io

    async def apply(self, request_id: str, file_path: str = APPLY_ALL) -> list[ApplyResult]:
        if file_path == APPLY_ALL:
            return await self.apply_all(request_id)
        return [await self.apply_one(request_id, file_path)]

    async def apply_all(self, request_id: str) -> list[ApplyResult]:
        recommendations = self.store.get(request_id)
        if not recommendations:
            logger.warning(f"No stored recommendations found for request {request_id}")
            return [ApplyResult(file_path=APPLY_ALL, ok=False, error=NO_RECOMMENDATIONS, not_found=True)]

        logger.info(f"Applying {len(recommendations)} recommendation(s) for request {request_id}")
        results = []
        for rec in recommendations:
            results.append(await self._write(rec))

        self.store.clear(request_id)
        return results

    async def apply_one(self, request_id: str, file_path: str) -> ApplyResult:
        if self.store.get(request_id) is None:
            logger.warning(f"No stored recommendations found for request {request_id}")
            return ApplyResult(file_path=file_path, ok=False, error=NO_RECOMMENDATIONS, not_found=True)

        rec = self.store.find(request_id, file_path)
        if rec is None:
            logger.warning(f"No recommendation for {file_path} in request {request_id}")
            return ApplyResult(
                file_path=file_path,
                ok=False,
                error=f"No code recommendation found for file {file_path}.",
                not_found=True,
            )

        result = await self._write(rec)
        if result.ok:
            self.store.remove_one(request_id, file_path)
            await self._refresh_editor(rec.file_path)
        return result

    def reject(self, request_id: str) -> bool:
        """Evict the request without touching any file."""
        removed = self.store.clear(request_id)
        if not removed:
            logger.warning(f"Reject for unknown request {request_id}")
        return removed

    async def _write(self, rec: Recommendation) -> ApplyResult:
        try:
            await self.file_io.write(rec.file_path, rec.code)
        except Exception as exc:
            logger.error(f"Failed to apply changes to {rec.file_path}: {exc}")
            return ApplyResult(file_path=rec.file_path, ok=False, error=str(exc))
        logger.info(f"Applied changes to {rec.file_path}")
        return ApplyResult(file_path=rec.file_path, ok=True)

    async def _refresh_editor(self, file_path: str) -> None:
        """Best-effort editor refresh; failures are logged only."""
        try:
            await self.file_io.open_in_editor(file_path)
        except Exception as exc:
            logger.error(f"Failed to refresh editor for {file_path}: {exc}")
