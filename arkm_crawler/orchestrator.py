import time

from .config import CHAINS
from .crawler import crawl_chain
from .limiter import run_bounded
from .progress import RunContext

CHAIN_CONCURRENCY = 3


def run_crawl(entity, client, page_size, page_count, chains=None, listener=None,
              concurrency=CHAIN_CONCURRENCY, sleep=time.sleep):
    """Crawl every chain for ``entity``'s hot wallets.

    Chains run ``concurrency`` at a time; a failing chain only ends that
    chain. Returns all rows, grouped by chain in the order given.
    """
    if entity is None or not entity.id:
        raise ValueError("请先选择实体")
    chains = list(CHAINS if chains is None else chains)
    if not chains:
        raise ValueError("未选择任何链")
    if page_size < 1 or page_count < 1:
        raise ValueError(f"每页数量与页数必须为正数：{page_size}, {page_count}")

    context = RunContext(chains, page_count, listener)
    context.start()

    def crawl_one(chain, index):
        result = crawl_chain(chain, entity, page_size, page_count, client, context, sleep=sleep)
        context.finish_chain(result.rows)
        return result

    results = run_bounded(chains, concurrency, crawl_one)
    return [row for result in results for row in result.rows]
