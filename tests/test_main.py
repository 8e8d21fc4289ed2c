import csv

import pytest

import main
from arkm_crawler.api import Entity, KeyCheck

from conftest import FakeClient, transfer


class FakeArkhamClient(FakeClient):
    instances = []

    def __init__(self, api_key=None, proxy=None):
        super().__init__({"bitcoin": [[transfer("bc1xyz", "bitcoin", entity="Acme")]]})
        self.api_key = api_key
        self.proxy = proxy
        self.searches = []
        FakeArkhamClient.instances.append(self)

    def health(self, signal=None):
        return True

    def check_key(self, signal=None):
        return KeyCheck(ok=self.api_key == "good", message="invalid API key")

    def search_entities(self, query, signal=None):
        self.searches.append(query)
        return [Entity("acme", "Acme", "fund")]


@pytest.fixture
def cli(monkeypatch, tmp_path):
    monkeypatch.delenv("ARKHAM_API_KEY", raising=False)
    monkeypatch.delenv("ARKHAM_PROXY", raising=False)
    monkeypatch.setattr(main, "ArkhamClient", FakeArkhamClient)
    FakeArkhamClient.instances = []
    config = tmp_path / "config.txt"
    config.write_text("api_key=good\nnum=100\noffset=1\nchains=bitcoin,ethereum\n", encoding="utf-8")

    def run(*argv):
        return main.main(["--config", str(config), *argv])

    return run


def test_missing_api_key_stops_before_any_request(monkeypatch, tmp_path, capsys):
    monkeypatch.delenv("ARKHAM_API_KEY", raising=False)
    monkeypatch.setattr(main, "ArkhamClient", FakeArkhamClient)
    FakeArkhamClient.instances = []

    assert main.main(["--config", str(tmp_path / "none.txt"), "search", "acme"]) == 1
    assert "请输入 API Key" in capsys.readouterr().out
    assert FakeArkhamClient.instances == []


def test_health(cli, capsys):
    assert cli("health") == 0
    assert "Health: OK" in capsys.readouterr().out


def test_check_key(cli, capsys):
    assert cli("check-key") == 0
    assert cli("--api-key", "bad", "check-key") == 1
    assert "API Key 无效" in capsys.readouterr().out


def test_search_lists_entities(cli, capsys):
    assert cli("search", "acme") == 0
    assert "Acme（类型：fund · ID：acme）" in capsys.readouterr().out


def test_blank_search_query(cli, capsys):
    assert cli("search", "  ") == 1
    assert "请输入搜索关键词" in capsys.readouterr().out
    assert FakeArkhamClient.instances[0].searches == []


def test_crawl_writes_csv(cli, tmp_path):
    out = tmp_path / "out"
    assert cli("crawl", "--entity-id", "acme", "--entity-name", "Acme", "--output", str(out)) == 0

    client = FakeArkhamClient.instances[0]
    assert sorted({c[0] for c in client.calls}) == ["bitcoin", "ethereum"]
    assert all(c[2] == 100 for c in client.calls)
    with open(out / "Acme_hot_wallets.csv", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [(r["chain"], r["address"]) for r in rows] == [("bitcoin", "bc1xyz")]


def test_crawl_by_query(cli, tmp_path):
    assert cli("crawl", "--query", "acme", "--output", str(tmp_path)) == 0
    assert FakeArkhamClient.instances[0].searches == ["acme"]
    assert (tmp_path / "Acme_hot_wallets.csv").exists()


def test_crawl_bad_pick(cli, capsys):
    assert cli("crawl", "--query", "acme", "--pick", "3") == 1
    assert "没有第 3 个实体" in capsys.readouterr().out


def test_crawl_needs_an_entity(cli, capsys):
    assert cli("crawl") == 1
    assert "请先选择实体" in capsys.readouterr().out


def test_unknown_chain_flag(cli, capsys):
    assert cli("crawl", "--entity-id", "acme", "--chains", "bitcoin,nope") == 1
    assert "nope" in capsys.readouterr().out


def test_batch_skips_malformed_lines(cli, tmp_path, capsys):
    args = tmp_path / "args.txt"
    args.write_text("Acme,acme\nbroken\n", encoding="utf-8")

    assert cli("batch", "--args", str(args), "--output", str(tmp_path / "result")) == 0
    assert "格式错误" in capsys.readouterr().out
    assert (tmp_path / "result" / "Acme_hot_wallets.csv").exists()


def test_batch_without_args_file(cli, tmp_path, capsys):
    assert cli("batch", "--args", str(tmp_path / "missing.txt")) == 1
    assert "缺少" in capsys.readouterr().out


def test_entity_id_needs_a_name(cli, tmp_path, capsys):
    out = tmp_path / "out"
    assert cli("crawl", "--entity-id", "acme", "--output", str(out)) == 1

    assert "--entity-name" in capsys.readouterr().out
    assert FakeArkhamClient.instances[0].calls == []
    assert not out.exists()
