"""Declarative request schemas and the helper that applies them."""

from __future__ import annotations

from typing import Annotated, Any, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import PayloadValidationError
from helpers import MAX_DB_INT

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
ALLOWED_IMAGE_TYPES = ("image/png", "image/jpeg", "image/gif")

Name = Annotated[str, Field(strict=True, min_length=1, max_length=64, pattern=r"\S")]
Email = Annotated[str, Field(strict=True, min_length=1, max_length=256, pattern=EMAIL_PATTERN)]
Password = Annotated[str, Field(strict=True, min_length=6, max_length=64)]
Id = Annotated[int, Field(strict=True, ge=0, le=MAX_DB_INT)]
Price = Annotated[int, Field(strict=True, ge=0, le=MAX_DB_INT)]
Rating = Annotated[int, Field(strict=True, ge=1, le=10)]

ModelT = TypeVar("ModelT", bound=BaseModel)


class _Schema(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UserRegister(_Schema):
    firstName: Name
    lastName: Name
    email: Email
    password: Password


class UserLogin(_Schema):
    email: Email
    password: Annotated[str, Field(strict=True, min_length=1, max_length=64)]


class UserEdit(_Schema):
    firstName: Optional[Name] = None
    lastName: Optional[Name] = None
    email: Optional[Email] = None
    password: Optional[Password] = None
    currentPassword: Optional[Password] = None


class GameCreate(_Schema):
    title: Annotated[str, Field(strict=True, min_length=1, max_length=128)]
    description: Annotated[str, Field(strict=True, min_length=1, max_length=1024)]
    genreId: Id
    price: Price
    platformIds: Annotated[list[Id], Field(min_length=1)]

    @field_validator("platformIds")
    @classmethod
    def _unique_platforms(cls, value: list[int]) -> list[int]:
        if len(set(value)) != len(value):
            raise ValueError("platformIds must not contain duplicates")
        return value


class GameEdit(_Schema):
    title: Optional[Annotated[str, Field(strict=True, min_length=1, max_length=128)]] = None
    description: Optional[Annotated[str, Field(strict=True, min_length=1, max_length=1024)]] = None
    genreId: Optional[Id] = None
    price: Optional[Price] = None
    platformIds: Optional[Annotated[list[Id], Field(min_length=1)]] = None

    @field_validator("platformIds")
    @classmethod
    def _unique_platforms(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and len(set(value)) != len(value):
            raise ValueError("platformIds must not contain duplicates")
        return value


class ReviewCreate(_Schema):
    rating: Rating
    review: Optional[Annotated[str, Field(strict=True, max_length=512)]] = None


class ImageHeader(_Schema):
    contentType: str

    @field_validator("contentType")
    @classmethod
    def _allowed_type(cls, value: str) -> str:
        normalized = value.split(";", 1)[0].strip().lower()
        if normalized not in ALLOWED_IMAGE_TYPES:
            raise ValueError(
                "must be one of " + ", ".join(ALLOWED_IMAGE_TYPES)
            )
        return normalized


def _format_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"data.{location} {message}" if location else f"data {message}"


def validate(schema: type[ModelT], payload: Any) -> ModelT:
    """Return ``payload`` parsed with ``schema`` or raise :class:`PayloadValidationError`."""

    if not isinstance(payload, dict):
        raise PayloadValidationError("Bad Request: request body must be a JSON object")
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        details = [_format_error(error) for error in exc.errors()]
        raise PayloadValidationError(f"Bad Request: {details[0]}", details) from exc


__all__ = [
    "ALLOWED_IMAGE_TYPES",
    "GameCreate",
    "GameEdit",
    "ImageHeader",
    "ReviewCreate",
    "UserEdit",
    "UserLogin",
    "UserRegister",
    "validate",
]
