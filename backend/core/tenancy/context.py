from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from customers.models import Company


_current_agency: ContextVar[Optional["Company"]] = ContextVar(
    "current_agency", default=None
)


def get_current_company() -> Optional["Company"]:
    return _current_agency.get()


def set_current_company(company: Optional["Company"]) -> Token:
    return _current_agency.set(company)


def reset_current_company(token: Token) -> None:
    _current_agency.reset(token)


@contextmanager
def tenant_context(company: Optional["Company"]) -> Iterator[Optional["Company"]]:
    """Bind ``company`` as the active agency outside of a request (commands, jobs)."""

    token = set_current_company(company)
    try:
        yield company
    finally:
        reset_current_company(token)
