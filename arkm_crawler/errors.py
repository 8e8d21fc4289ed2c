class CrawlerError(Exception):
    pass


class ArkhamAPIError(CrawlerError):
    """Arkham answered, but not with what we asked for."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class RequestCancelled(CrawlerError):
    def __init__(self, reason="请求已取消"):
        super().__init__(reason)
        self.reason = reason


class ConfigError(CrawlerError):
    pass
