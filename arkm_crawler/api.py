from dataclasses import dataclass
from typing import Optional

from .errors import ArkhamAPIError
from .transport import API_KEY_HEADER, make_transport

HEALTH_URL = "https://api.arkm.com/health"
CHAINS_URL = "https://api.arkm.com/chains"
SEARCH_URL = "https://api.arkm.com/intelligence/search"
TRANSFERS_URL = "https://api.arkhamintelligence.com/transfers"


@dataclass(frozen=True)
class Entity:
    id: str
    name: str
    type: Optional[str] = None

    @classmethod
    def from_api(cls, data):
        return cls(id=str(data.get("id", "")), name=data.get("name") or "", type=data.get("type"))


@dataclass(frozen=True)
class KeyCheck:
    ok: bool
    message: Optional[str] = None


class ArkhamClient:
    def __init__(self, api_key=None, proxy=None, transport=None):
        self.api_key = api_key
        self.transport = transport or make_transport(proxy)

    @property
    def headers(self):
        return {API_KEY_HEADER: self.api_key} if self.api_key else {}

    def health(self, signal=None):
        resp = self.transport.send(HEALTH_URL, signal=signal)
        raw = resp.text.strip()
        if not resp.ok:
            raise ArkhamAPIError(f"HTTP {resp.status_code} {resp.reason}: {raw}", resp.status_code)
        if raw.lower() != "ok":
            raise ArkhamAPIError(raw or "Arkham API 状态异常", resp.status_code)
        return True

    def check_key(self, signal=None):
        resp = self.transport.send(CHAINS_URL, headers=self.headers, signal=signal)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        # an invalid key comes back as {"message": "..."}
        if isinstance(data, dict) and "message" in data:
            return KeyCheck(ok=False, message=data["message"])
        return KeyCheck(ok=True)

    def search_entities(self, query, signal=None):
        resp = self.transport.send(SEARCH_URL, params={"query": query}, headers=self.headers, signal=signal)
        if not resp.ok:
            raise ArkhamAPIError(f"搜索失败：{resp.status_code}", resp.status_code)
        entities = resp.json().get("arkhamEntities") or []
        return [Entity.from_api(e) for e in entities]

    def fetch_transfers(self, chain, entity_id, limit, offset, signal=None):
        querystring = {
            "base": entity_id,
            "chains": chain,
            "flow": "out",
            "limit": limit,
            "offset": offset,
            "sortKey": "time",
            "sortDir": "desc",
            "usdGte": 1,
        }
        resp = self.transport.send(TRANSFERS_URL, params=querystring, headers=self.headers, signal=signal)
        if not resp.ok:
            raise ArkhamAPIError(f"转账查询失败 @{chain}：{resp.status_code}", resp.status_code)
        return resp.json()
