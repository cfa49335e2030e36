"""AniList list-tracking models."""

from __future__ import annotations

from enum import StrEnum
from functools import cache
from typing import ClassVar, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MediaListStatus(StrEnum):
    """Status of a media list entry; each status is its own list bucket."""

    CURRENT = "CURRENT"
    PLANNING = "PLANNING"
    COMPLETED = "COMPLETED"
    DROPPED = "DROPPED"
    PAUSED = "PAUSED"
    REPEATING = "REPEATING"


class AniListBaseModel(BaseModel):
    """Base class for models that mirror GraphQL objects.

    Provides camelCase aliasing and generation of the GraphQL selection set
    for a model.
    """

    _processed_models: ClassVar[set] = set()

    def model_dump(self, **kwargs) -> dict:
        """Convert the model to a dictionary with camelCase keys."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump(**kwargs)

    def model_dump_json(self, **kwargs) -> str:
        """Serialize the model to JSON with camelCase keys."""
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(**kwargs)

    @classmethod
    @cache
    def model_dump_graphql(cls) -> str:
        """Generate the GraphQL selection set for this model.

        A field may override its selection through
        ``json_schema_extra={"graphql": "alias: remoteField"}``.

        Returns:
            str: The GraphQL query fields.
        """
        if cls.__name__ in cls._processed_models:
            return ""

        cls._processed_models.add(cls.__name__)
        graphql_fields = []

        for field_name, field in cls.model_fields.items():
            extra = field.json_schema_extra
            if isinstance(extra, dict) and "graphql" in extra:
                graphql_fields.append(str(extra["graphql"]))
                continue

            field_type = (
                get_args(field.annotation)[0]
                if get_origin(field.annotation)
                else field.annotation
            )
            camel_field_name = to_camel(field_name)

            if isinstance(field_type, type) and issubclass(
                field_type, AniListBaseModel
            ):
                nested_fields = field_type.model_dump_graphql()
                if nested_fields:
                    graphql_fields.append(f"{camel_field_name} {{\n{nested_fields}\n}}")
            else:
                graphql_fields.append(camel_field_name)

        cls._processed_models.remove(cls.__name__)
        return "\n".join(graphql_fields)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ListEntry(AniListBaseModel):
    """A user's tracking state for one anime.

    Unknown values use the sentinel ``-1`` (and ``PLANNING`` for the status),
    which is what an optimistic projection of a not-yet-cached entry carries.
    """

    id: int = -1
    media_id: int
    score: float = -1
    progress: int = -1
    rewatched: int = Field(-1, json_schema_extra={"graphql": "rewatched: repeat"})
    status: MediaListStatus = MediaListStatus.PLANNING

    def __str__(self) -> str:
        """Return a compact representation used in log messages."""
        return (
            f"(media_id={self.media_id}, status={self.status}, score={self.score}, "
            f"progress={self.progress}, rewatched={self.rewatched})"
        )


class EditListEntryOptions(AniListBaseModel):
    """Fields that may be changed in a single list entry edit."""

    status: MediaListStatus | None = None
    score: float | None = None
    progress: int | None = None
    rewatched: int | None = None

    def changes(self) -> dict:
        """Return only the fields that were explicitly set, by python name."""
        return self.model_dump(by_alias=False, exclude_unset=True, exclude_none=True)
