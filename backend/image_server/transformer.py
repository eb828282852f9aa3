"""
Transform Orchestrator

Runs the codec for a cache miss and writes the result to the cache path.

- The codec runs in a worker thread so the event loop keeps serving
- The deadline is a soft timeout: the request stops waiting, the job does not
- A job that finishes after its deadline still writes the cache file
- Output is written to a temp file and renamed over the cache path
"""

import asyncio
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Set

from .codec import transform_image
from .options import ResolvedOptions

logger = logging.getLogger(__name__)

Codec = Callable[[bytes, ResolvedOptions], bytes]


def write_atomic(path: Path, data: bytes) -> None:
    """Write data to path via a temp file in the same directory."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=path.suffix)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class TransformOrchestrator:
    """
    Invokes the codec with a per-request deadline.

    Usage:
        orchestrator = TransformOrchestrator()
        ok = await orchestrator.transform(source, options, cache_path, deadline=5.0)
    """

    def __init__(self, codec: Codec = transform_image):
        self.codec = codec
        # Jobs still running, including ones whose request gave up
        self.pending_jobs: Set[asyncio.Task] = set()

    def _run(self, source_path: Path, options: ResolvedOptions, cache_path: Path) -> int:
        """Blocking read -> codec -> write. Returns bytes written."""
        data = source_path.read_bytes()
        output = self.codec(data, options)
        write_atomic(cache_path, output)
        return len(output)

    def _on_job_done(self, task: asyncio.Task, cache_path: Path, started: float) -> None:
        self.pending_jobs.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        elapsed = time.perf_counter() - started
        if error is not None:
            logger.error(f"[Transform] Failed for {cache_path.name}: {error}")
        else:
            logger.info(
                f"[Transform] Wrote {cache_path.name} ({task.result()} bytes, {elapsed:.2f}s)"
            )

    async def transform(
        self,
        source_path: Path,
        options: ResolvedOptions,
        cache_path: Path,
        deadline: float,
    ) -> bool:
        """
        Transform source_path into cache_path.

        Args:
            source_path: Existing source image
            options: Resolved transform options
            cache_path: Destination in the cache directory
            deadline: Seconds the caller is willing to wait

        Returns:
            True if the cache file was written before the deadline.
        """
        started = time.perf_counter()
        task = asyncio.create_task(
            asyncio.to_thread(self._run, source_path, options, cache_path)
        )
        self.pending_jobs.add(task)
        task.add_done_callback(lambda t: self._on_job_done(t, cache_path, started))

        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=deadline)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                f"[Transform] Timed out after {deadline}s: {source_path.name} -> {cache_path.name} "
                f"(job left running)"
            )
            return False
        except Exception as e:
            # Already logged by _on_job_done
            logger.debug(f"[Transform] {type(e).__name__} for {source_path.name}: {e}")
            return False

    async def drain(self) -> None:
        """Wait for every pending job, including abandoned ones."""
        if self.pending_jobs:
            await asyncio.gather(*list(self.pending_jobs), return_exceptions=True)
