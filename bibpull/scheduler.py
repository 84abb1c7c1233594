"""
Batch scheduler.

Runs pipelines on a bounded thread pool and returns them in input order,
whatever order they finish in. Ctrl+C cancels the batch gracefully:
pipelines that have not started are never launched, running ones stop at
their next backoff wait, and finished ones keep their outcome. A second
Ctrl+C exits the process at once with status 130, without waiting for
in-flight requests.
"""

from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor
import concurrent.futures
from typing import List, Optional, Sequence
import logging
import os
import signal
import sys
import threading

from tqdm import tqdm

from .inputs import Input
from .pipeline import FetchPipeline, RetryingPipeline
from .retry import RetryPolicy, WaitFn
from .translators.registry import TranslatorRegistry

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1

# Exit status for a forced quit (128 + SIGINT)
FORCE_QUIT_STATUS = 130


class Scheduler:
    """Bounded-parallelism runner for pipelines."""

    def __init__(
        self,
        max_workers: int = 4,
        show_progress: bool = False,
        handle_signals: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            max_workers: Maximum number of pipelines running at once
            show_progress: Show a tqdm progress bar on stderr
            handle_signals: Bind SIGINT to cancel() while running (main thread only)
            cancel_event: Shared cancellation flag (a new one if None)
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self.show_progress = show_progress
        self.handle_signals = handle_signals
        self.cancel_event = cancel_event or threading.Event()
        self._interrupt_count = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Stop launching pipelines and wake any pipeline waiting to retry."""
        if not self.cancel_event.is_set():
            logger.warning("Cancelling: no new work will be started")
        self.cancel_event.set()

    def _signal_handler(self, signum, frame):
        self._interrupt_count += 1
        if self._interrupt_count == 1:
            logger.warning("Interrupt received - shutting down gracefully (press Ctrl+C again to force quit)")
            self.cancel()
        else:
            # Worker threads cannot be interrupted; skip joining them
            logger.warning(f"Force quit (interrupt #{self._interrupt_count})")
            sys.stdout.flush()
            sys.stderr.flush()
            os._exit(FORCE_QUIT_STATUS)

    def _install_signal_handler(self):
        if not self.handle_signals or threading.current_thread() is not threading.main_thread():
            return None
        self._interrupt_count = 0
        return signal.signal(signal.SIGINT, self._signal_handler)

    def _restore_signal_handler(self, original) -> None:
        if original is not None:
            signal.signal(signal.SIGINT, original)

    def _run_one(self, pipeline: RetryingPipeline) -> RetryingPipeline:
        if self.cancel_event.is_set():
            pipeline.cancel()
            return pipeline
        pipeline.run()
        return pipeline

    def run(self, pipelines: Sequence[RetryingPipeline], desc: str = "Fetching") -> List[RetryingPipeline]:
        """Run pipelines to completion.

        Returns:
            The same pipelines, in the order given, each in a terminal state
        """
        pipelines = list(pipelines)
        if not pipelines:
            return pipelines

        counts = {'ok': 0, 'failed': 0}
        pbar = tqdm(total=len(pipelines), desc=desc, unit="item", leave=False) if self.show_progress else None

        original_handler = self._install_signal_handler()
        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(pipelines)))
        try:
            pending = {executor.submit(self._run_one, p) for p in pipelines}

            while pending:
                done, pending = concurrent.futures.wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    if future.cancelled():
                        continue
                    # _run_one never raises: pipelines turn every error into a state
                    pipeline = future.result()
                    counts['ok' if pipeline.succeeded else 'failed'] += 1
                    if pbar is not None:
                        pbar.update(1)
                        pbar.set_postfix_str(f"✓ {counts['ok']} ✗ {counts['failed']}", refresh=False)

                if self.cancel_event.is_set():
                    # Drop queued work; running pipelines finish their attempt
                    for future in pending:
                        future.cancel()
        except BaseException:
            # KeyboardInterrupt outside our handler: drop queued work, leave running threads
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        else:
            executor.shutdown(wait=True)
        finally:
            self._restore_signal_handler(original_handler)
            if pbar is not None:
                pbar.close()

        for pipeline in pipelines:
            if not pipeline.done:
                pipeline.cancel()

        logger.info(f"{desc}: {counts['ok']} succeeded, {len(pipelines) - counts['ok']} did not")
        return pipelines

    def fetch_all(
        self,
        inputs: Sequence[Input],
        registry: TranslatorRegistry,
        policy: Optional[RetryPolicy] = None,
        wait: Optional[WaitFn] = None,
        listener=None,
    ) -> List[FetchPipeline]:
        """Resolve every Input; results come back in input order."""
        pipelines = [
            FetchPipeline(input, registry, policy=policy, wait=wait,
                          cancel_event=self.cancel_event, listener=listener)
            for input in inputs
        ]
        return self.run(pipelines, desc="Fetching")


__all__ = ['Scheduler']
