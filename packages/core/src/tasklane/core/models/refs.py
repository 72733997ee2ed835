"""用户引用的边界归一化

请求体里的用户引用有两种形态：裸 user_id 字符串，或展开后的
{"user_id": ..., "name": ..., "email": ...} 对象（前端回传已展开的任务时出现）。
指派字段还可能是单个引用或引用列表。
这里一次性把它们解析为规范形态 list[str]，业务逻辑只接触规范形态。
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class UserRefObject(BaseModel):
    """展开形态的用户引用，多余字段忽略"""

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(min_length=1)


UserRef = Annotated[str | UserRefObject, Field(union_mode="left_to_right")]

_refs_adapter: TypeAdapter[UserRef | list[UserRef]] = TypeAdapter(UserRef | list[UserRef])


def resolve_user_ref(ref: str | UserRefObject) -> str:
    """把单个引用解析为 user_id（去除首尾空白）"""
    if isinstance(ref, UserRefObject):
        return ref.user_id.strip()
    return ref.strip()


def normalize_user_refs(value: Any) -> list[str]:
    """把指派输入归一化为去重后的 user_id 列表

    - None -> []
    - 单个 id 或对象 -> 单元素列表
    - 列表 -> 逐项解析，丢弃空白项，按首次出现顺序去重

    Raises:
        pydantic.ValidationError: 输入既不是引用也不是引用列表
    """
    if value is None:
        return []

    parsed = _refs_adapter.validate_python(value)
    refs = parsed if isinstance(parsed, list) else [parsed]

    ids: list[str] = []
    for ref in refs:
        user_id = resolve_user_ref(ref)
        if user_id and user_id not in ids:
            ids.append(user_id)
    return ids
