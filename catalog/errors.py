"""
文件目的: 业务异常分类

路由层统一捕获 CatalogError，按 status_code 转成纯文本响应；
其他未预期异常一律 500，并把原始错误信息作为响应体返回。
"""


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class BadRequest(CatalogError):
    status_code = 400


class Unauthorized(CatalogError):
    status_code = 401


class Forbidden(CatalogError):
    status_code = 403


class NotFound(CatalogError):
    status_code = 404


class Conflict(CatalogError):
    status_code = 409


class PreconditionRequired(CatalogError):
    status_code = 428
