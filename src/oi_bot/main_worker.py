"""Background worker that consumes CommandEvents from the event bus.

Claims pending events and runs the command handler for each on a thread
pool, so events are handled concurrently and in no particular order.
Runs until interrupted (SIGINT / SIGTERM).

Usage:
    oi-worker [--once]   # or: python -m oi_bot.main_worker
"""

import argparse
import signal
import threading
from concurrent.futures import ThreadPoolExecutor
from .config import Settings, get_settings
from .events import QueuedEvent
from .llm.client import CompletionClient
from .log import setup_logging, get_logger
from .pipeline.handler import CommandHandler
from .slack.respond import CallbackClient
from .store.bus import EventBus
from .store.db import init_db

logger = get_logger("worker")

class Worker:
    def __init__(self, settings: Settings, bus: EventBus, handler: CommandHandler):
        self.bus = bus
        self.handler = handler
        self.concurrency = settings.WORKER_CONCURRENCY
        self.poll_interval = settings.WORKER_POLL_INTERVAL_SECONDS
        self._stopping = threading.Event()

    def close(self):
        self.handler.close()

    def stop(self, *_):
        logger.info("Stopping worker...")
        self._stopping.set()

    def process(self, queued: QueuedEvent) -> bool:
        """Handle one delivery and report the outcome to the bus."""
        logger.info(f"Handling event {queued.id} (attempt {queued.attempts})")
        try:
            self.handler.handle(queued.event)
        except Exception as e:
            logger.exception(f"Event {queued.id} failed")
            self.settle(queued, self.bus.nack, queued.id, str(e))
            return False
        return self.settle(queued, self.bus.ack, queued.id)

    def settle(self, queued: QueuedEvent, outcome, *args) -> bool:
        # an unsettled event stays processing until requeue_stale hands it out again
        try:
            outcome(*args)
        except Exception:
            logger.exception(f"Could not record the outcome of event {queued.id}; it will be redelivered")
            return False
        return True

    def claim_batch(self):
        batch = []
        while len(batch) < self.concurrency:
            queued = self.bus.claim()
            if queued is None:
                break
            batch.append(queued)
        return batch

    def run_once(self) -> int:
        """Process everything claimable right now on the calling thread."""
        self.bus.requeue_stale()
        handled = 0
        while True:
            queued = self.bus.claim()
            if queued is None:
                return handled
            self.process(queued)
            handled += 1

    def run(self):
        logger.info(f"Worker started with {self.concurrency} threads. Polling for events...")
        with ThreadPoolExecutor(max_workers=self.concurrency, thread_name_prefix="oi-event") as pool:
            while not self._stopping.is_set():
                try:
                    self.bus.requeue_stale()
                    batch = self.claim_batch()
                    if not batch:
                        self._stopping.wait(self.poll_interval)
                        continue
                    futures = [pool.submit(self.process, queued) for queued in batch]
                    for future in futures:
                        future.result()
                except Exception:
                    logger.exception("Worker loop error")
                    self._stopping.wait(self.poll_interval)

def build_worker(settings: Settings) -> Worker:
    handler = CommandHandler(
        completer=CompletionClient(settings),
        callbacks=CallbackClient(settings),
    )
    return Worker(settings, EventBus(settings), handler)

def main(argv=None):
    parser = argparse.ArgumentParser(description="Consume slash command events and answer them.")
    parser.add_argument("--once", action="store_true", help="drain the bus once and exit")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    init_db(settings.DB_PATH)

    worker = build_worker(settings)
    try:
        if args.once:
            handled = worker.run_once()
            logger.info(f"Handled {handled} event(s); bus now holds {worker.bus.counts()}")
            return
        signal.signal(signal.SIGINT, worker.stop)
        signal.signal(signal.SIGTERM, worker.stop)
        worker.run()
    finally:
        worker.close()

if __name__ == "__main__":
    main()
