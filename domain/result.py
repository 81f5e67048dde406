"""Result type - explicit success/failure values returned by use cases"""
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from domain.exceptions import DomainError

T = TypeVar("T")
E = TypeVar("E", bound=DomainError)


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    error: E

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def unwrap(self):
        """Raise the carried error; used at the HTTP boundary"""
        raise self.error


Result = Union[Success[T], Failure[DomainError]]
