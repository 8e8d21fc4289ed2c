import time
from dataclasses import dataclass, field
from typing import List, Optional

from .extractor import extract_hot_wallet, sender_info
from .transport import CancelSignal

PAGE_DELAY = 1.0
PAGE_TIMEOUT = 15.0


@dataclass
class ChainResult:
    """Outcome of one chain: its rows, plus the failure reason if it broke."""

    chain: str
    rows: List[dict] = field(default_factory=list)
    error: Optional[str] = None
    elapsed: int = 0

    @property
    def ok(self):
        return self.error is None

    @property
    def status(self):
        if self.error is not None:
            return f"失败 · {self.error}"
        return f"完成 · 共 {len(self.rows)} 个地址"


def _reason(exc):
    return str(exc) or exc.__class__.__name__


def crawl_chain(chain, entity, limit, pages, client, context,
                sleep=time.sleep, page_delay=PAGE_DELAY, page_timeout=PAGE_TIMEOUT):
    started = time.monotonic()

    def elapsed():
        return round(time.monotonic() - started)

    merged_result = {}
    counted = 0
    error = None
    try:
        context.chain_status(chain, f"进行中 · 第 0/{pages} 页 · 已获 0", elapsed())
        for i in range(pages):
            offset = i * limit
            if i > 0:
                sleep(page_delay)
            signal = CancelSignal(page_timeout)
            data = client.fetch_transfers(chain, entity.id, limit, offset, signal=signal)
            transfers = data.get('transfers') or []
            if not transfers:
                counted = pages
                context.advance_pages(pages - i)
                break

            before = set(merged_result)
            for tx in transfers:
                extract_hot_wallet(sender_info(tx), merged_result, entity.name)
            fresh = [row for key, row in merged_result.items() if key not in before]
            if fresh:
                context.new_rows(chain, fresh)

            counted += 1
            context.advance_pages(1)
            context.chain_status(chain, f"进行中 · 第 {i + 1}/{pages} 页 · 已获 {len(merged_result)}", elapsed())
    except Exception as e:
        error = _reason(e)
    finally:
        # pages never fetched still count, so the run ends at 100%
        if counted < pages:
            context.advance_pages(pages - counted)

    result = ChainResult(chain, list(merged_result.values()), error, elapsed())
    context.chain_status(chain, result.status, result.elapsed)
    return result
