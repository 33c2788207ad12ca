"""订阅源摄取错误类型."""


class IngestionError(Exception):
    """摄取流程错误基类，携带对应的 HTTP 状态码."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(IngestionError):
    """请求缺少必填字段."""

    status_code = 400


class NotFoundError(IngestionError):
    """Feed 不存在，或发现流程所有策略均失败."""

    status_code = 404


class ConflictError(IngestionError):
    """重复订阅（唯一约束冲突）."""

    status_code = 409


class FormatError(IngestionError):
    """内容已获取，但不是可识别的 RSS/Atom/RDF 文档."""

    status_code = 422


class FetchError(IngestionError):
    """网络或 HTTP 层面的抓取失败."""

    status_code = 502

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class UpstreamFormatError(FormatError):
    """已订阅的 Feed 上游返回的内容不再是订阅源（上游问题）."""

    status_code = 502
