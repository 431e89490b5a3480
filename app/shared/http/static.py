"""
Static asset stage.

GET and HEAD requests outside the API prefix are resolved against the
public directory. A matching regular file is served directly and the
pipeline stops; anything else falls through to the routers.
"""

import logging
import os
import stat

import anyio
from starlette.staticfiles import StaticFiles

from app.shared.pipeline.stage import RequestContext, Stage, StageOutcome
from app.shared.security.rate_limiting import path_in_scope

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"
_SERVED_METHODS = ("GET", "HEAD")


class StaticFilesStage(Stage):
    """Serves files from ``directory`` for non-API paths.

    Args:
        directory: The public directory. It may be missing; every lookup
            then falls through.
        api_prefix: Paths under this prefix are never treated as assets.
    """

    name = "static"

    def __init__(self, directory: str | os.PathLike[str], api_prefix: str = "/api") -> None:
        self._files = StaticFiles(directory=directory, check_dir=False)
        self._api_prefix = api_prefix

    def _relative_path(self, path: str) -> str:
        if path.endswith("/"):
            path += INDEX_FILE
        return os.path.normpath(os.path.join(*path.split("/")))

    async def process(self, ctx: RequestContext) -> StageOutcome:
        if ctx.method not in _SERVED_METHODS or path_in_scope(ctx.path, self._api_prefix):
            return StageOutcome.proceed()

        relative = self._relative_path(ctx.path)
        full_path, stat_result = await anyio.to_thread.run_sync(
            self._files.lookup_path, relative
        )
        if stat_result is None or not stat.S_ISREG(stat_result.st_mode):
            return StageOutcome.proceed()

        logger.debug("Serving static file %s", relative)
        return StageOutcome.terminate(
            self._files.file_response(full_path, stat_result, ctx.scope)
        )
