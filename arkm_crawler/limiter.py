import concurrent.futures


def run_bounded(items, limit, worker):
    """Run ``worker(item, index)`` for every item, at most ``limit`` at a time.

    Results come back in input order whatever order the workers finish in.
    The worker owns its error handling; an exception it lets out is raised
    from here once it is collected.
    """
    if limit < 1:
        raise ValueError(f"并发上限至少为 1：{limit}")
    items = list(items)
    results = [None] * len(items)
    if not items:
        return results

    pending = iter(enumerate(items))
    with concurrent.futures.ThreadPoolExecutor(max_workers=min(limit, len(items))) as executor:
        in_flight = {}

        def start_next():
            for index, item in pending:
                in_flight[executor.submit(worker, item, index)] = index
                return True
            return False

        while len(in_flight) < limit and start_next():
            pass

        while in_flight:
            done, _ = concurrent.futures.wait(in_flight, return_when=concurrent.futures.FIRST_COMPLETED)
            for future in done:
                index = in_flight.pop(future)
                results[index] = future.result()
                start_next()

    return results
