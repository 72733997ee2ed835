"""领域异常体系

所有业务失败都带有可读 message 和机器可判定的 code，
gateway 统一渲染为 {"error": {"code", "message"}}。
"""


class TaskLaneError(Exception):
    """业务异常基类"""

    status_code: int = 500
    code: str = "ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        """
        Args:
            message: 错误描述
            code: 错误码，缺省使用类上定义的 code
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(TaskLaneError):
    """输入校验失败：必填字段缺失、枚举值非法、指派人不存在等"""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or []


class AuthorizationError(TaskLaneError):
    """已认证但缺少角色或归属权限"""

    status_code = 403
    code = "FORBIDDEN"


class AuthenticationError(AuthorizationError):
    """凭证缺失、无效或已过期"""

    status_code = 401
    code = "UNAUTHORIZED"


class NotFoundError(TaskLaneError):
    """标识符无法解析到已存在的实体"""

    status_code = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        """
        Args:
            entity: 实体名称（Task / Client / User）
            entity_id: 未找到的标识符
        """
        super().__init__(
            f"{entity} with id {entity_id} does not exist",
            code=f"{entity.upper()}_NOT_FOUND",
        )
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(TaskLaneError):
    """持久层唯一约束或引用约束冲突"""

    status_code = 409
    code = "CONFLICT"


class InternalError(TaskLaneError):
    """事务内的意外失败（已回滚）"""

    status_code = 500
    code = "INTERNAL_ERROR"
