"""Pydantic schemas for API request/response bodies.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SummaryItem(CamelModel):
    id: int
    name: str
    number: int
    image: Optional[str] = None
    types: List[str] = []


class Images(CamelModel):
    front: Optional[str] = None
    back: Optional[str] = None
    front_shiny: Optional[str] = None
    back_shiny: Optional[str] = None
    artwork: Optional[str] = None


class Ability(CamelModel):
    name: str
    is_hidden: bool = False


class Move(CamelModel):
    name: str
    learn_method: Optional[str] = None


class Stat(CamelModel):
    name: str
    value: int


class Form(CamelModel):
    name: str
    is_default: bool = False


class DetailItem(SummaryItem):
    images: Images
    height: float
    weight: float
    abilities: List[Ability] = []
    moves: List[Move] = []
    stats: List[Stat] = []
    forms: List[Form] = []
    description: str = "No description available"
    genus: str = "Unknown"
    habitat: str = "Unknown"
    generation: str = "Unknown"


class PaginationOut(CamelModel):
    total: int
    limit: int
    offset: int
    has_next: bool
    has_prev: bool


class PageResult(CamelModel, Generic[T]):
    results: List[T]
    pagination: PaginationOut


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    data: T


class LoginIn(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class VerifyIn(BaseModel):
    token: Optional[str] = None


class UserOut(BaseModel):
    username: str


class LoginOut(BaseModel):
    token: str
    user: UserOut


class VerifyOut(BaseModel):
    user: UserOut


class MessageOut(BaseModel):
    success: bool = True
    message: str


class HealthOut(BaseModel):
    status: Literal["ok"]
    timestamp: str


class HealthcheckOut(BaseModel):
    status: Literal["ok", "degraded"]
    upstream_ok: bool
    index_cached: bool
    cache_size: int
    cache_ttl_seconds: float


class ProblemDetail(BaseModel):
    """RFC 7807-style problem response (simplified)."""

    type: str = "about:blank"
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
