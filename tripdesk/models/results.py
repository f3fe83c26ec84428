"""Result types returned at the trip backend boundary."""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class ApiError:
    message: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: ApiError

    @property
    def ok(self) -> bool:
        return False


ApiResult = Union[Ok[T], Err]
