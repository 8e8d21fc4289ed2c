import json

import pytest
import requests

from arkm_crawler.progress import CrawlListener


def make_response(status=200, body=None, text=None, reason="OK"):
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    if text is None:
        text = json.dumps(body if body is not None else {})
    resp._content = text.encode("utf-8")
    resp._content_consumed = True
    resp.encoding = "utf-8"
    return resp


def addr_info(address, chain, entity="Acme", label="Hot Wallet"):
    return {
        "address": address,
        "chain": chain,
        "arkhamEntity": {"name": entity},
        "arkhamLabel": {"name": label},
    }


def transfer(address, chain, entity="Acme", label="Hot Wallet", owner=True):
    info = addr_info(address, chain, entity, label)
    if owner:
        return {"fromAddressOwner": info, "fromAddress": {"address": "other", "chain": chain}}
    return {"fromAddress": info}


class FakeClient:
    """Serves scripted transfer pages; an Exception in the script is raised."""

    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def fetch_transfers(self, chain, entity_id, limit, offset, signal=None):
        self.calls.append((chain, entity_id, limit, offset, signal))
        script = self.pages.get(chain, [])
        index = offset // limit
        page = script[index] if index < len(script) else []
        if isinstance(page, Exception):
            raise page
        return {"transfers": page}


class RecordingListener(CrawlListener):
    def __init__(self):
        self.percents = []
        self.statuses = {}
        self.new = []
        self.summaries = []

    def progress(self, percent):
        self.percents.append(percent)

    def chain_status(self, chain, message, elapsed=None):
        self.statuses.setdefault(chain, []).append(message)

    def new_rows(self, chain, rows):
        self.new.append((chain, list(rows)))

    def summary(self, completed_chains, total_chains, total_addresses):
        self.summaries.append((completed_chains, total_chains, total_addresses))


@pytest.fixture
def listener():
    return RecordingListener()
