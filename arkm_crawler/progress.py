"""
Run-scoped crawl state and the listener hooks that report it.

One ``RunContext`` exists per crawl run. Chains are crawled on worker
threads, so every mutation goes through the context's lock and every
listener call is made while holding it; listeners therefore see page
progress in order and never observe the percentage going backwards.
A listener that raises is reported and skipped; it never stops a run.
"""

import threading

from .log import entity_print, timestamped_print


class CrawlListener:
    """No-op hooks; subclass and override what you need."""

    def progress(self, percent):
        pass

    def chain_status(self, chain, message, elapsed=None):
        pass

    def new_rows(self, chain, rows):
        pass

    def summary(self, completed_chains, total_chains, total_addresses):
        pass


class ConsoleListener(CrawlListener):
    def __init__(self, entity_name):
        self.entity_name = entity_name
        self._last_percent = None

    def progress(self, percent):
        if percent != self._last_percent:
            self._last_percent = percent
            entity_print(self.entity_name, f"进度 {percent}%")

    def chain_status(self, chain, message, elapsed=None):
        suffix = f" ({elapsed}s)" if elapsed is not None else ""
        entity_print(self.entity_name, f"{chain} 链 {message}{suffix}")

    def new_rows(self, chain, rows):
        for row in rows:
            entity_print(self.entity_name, f"{chain} 链新增热钱包 {row['address']}")

    def summary(self, completed_chains, total_chains, total_addresses):
        entity_print(self.entity_name, f"已完成 {completed_chains}/{total_chains} 链 · 总地址 {total_addresses}")


def round_percent(done, total):
    if total <= 0:
        return 100
    # half-up, not banker's rounding
    return min(100, (200 * done + total) // (2 * total))


class RunContext:
    def __init__(self, chains, pages_per_chain, listener=None):
        self.chains = list(chains)
        self.pages_per_chain = pages_per_chain
        self.total_chains = len(self.chains)
        self.total_pages = self.total_chains * pages_per_chain
        self.completed_chains = 0
        self.completed_pages = 0
        self.results = []
        self.listener = listener or CrawlListener()
        self._lock = threading.Lock()

    @property
    def percent(self):
        return round_percent(self.completed_pages, self.total_pages)

    def start(self):
        with self._lock:
            self._notify(self.listener.progress, self.percent)
            for chain in self.chains:
                self._notify(self.listener.chain_status, chain, "待开始")
            self._notify(self.listener.summary, self.completed_chains, self.total_chains, len(self.results))

    def advance_pages(self, count):
        with self._lock:
            if count > 0:
                self.completed_pages = min(self.total_pages, self.completed_pages + count)
            self._notify(self.listener.progress, self.percent)

    def chain_status(self, chain, message, elapsed=None):
        with self._lock:
            self._notify(self.listener.chain_status, chain, message, elapsed)

    def new_rows(self, chain, rows):
        with self._lock:
            self._notify(self.listener.new_rows, chain, rows)

    def finish_chain(self, rows):
        with self._lock:
            self.results.extend(rows)
            self.completed_chains = min(self.total_chains, self.completed_chains + 1)
            self._notify(self.listener.summary, self.completed_chains, self.total_chains, len(self.results))

    def _notify(self, hook, *args):
        try:
            hook(*args)
        except Exception as e:
            timestamped_print(f"回调 {getattr(hook, '__name__', hook)} 出错：{e!r}")
