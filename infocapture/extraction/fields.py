"""The ordered set of phrases the extractor listens for.

Order is fixed: the built-in default fields first, then the user's custom
fields in the order they were entered. Blank custom slots are not fields.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from pydantic import BaseModel, field_validator

from infocapture.config.settings import ExtractionConfig


class FieldSpec(BaseModel):
    """A single field definition.

    The label keeps its original casing; identity is the normalized
    (trimmed, lower-cased) label.
    """

    label: str

    model_config = {"frozen": True}

    @field_validator("label")
    @classmethod
    def _validate_label(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("label cannot be blank")
        return value

    @property
    def normalized(self) -> str:
        return self.label.strip().lower()

    @property
    def trigger_word(self) -> str:
        """First word of the label, used to anchor value capture."""
        return self.normalized.split()[0]


class FieldRegistry:
    """Immutable ordered registry of default and custom fields.

    The only supported change is replacing the custom entries wholesale via
    :meth:`with_custom_fields`, which returns a new registry.
    """

    def __init__(
        self,
        custom_fields: Iterable[str] = (),
        config: ExtractionConfig | None = None,
    ) -> None:
        self._config = config or ExtractionConfig()
        self._custom_entries = tuple(custom_fields)[: self._config.max_custom_fields]
        self._fields = self._build()

    def _build(self) -> tuple[FieldSpec, ...]:
        fields: list[FieldSpec] = []
        seen: set[str] = set()
        defaults = [FieldSpec(label=label) for label in self._config.default_fields]
        customs = [FieldSpec(label=entry.strip()) for entry in self._custom_entries if entry.strip()]
        for spec in defaults + customs:
            # A repeated label aliases the slot that already owns it
            if spec.normalized in seen:
                continue
            seen.add(spec.normalized)
            fields.append(spec)
        return tuple(fields)

    @property
    def config(self) -> ExtractionConfig:
        return self._config

    @property
    def custom_entries(self) -> tuple[str, ...]:
        """The raw custom entries this registry was built from."""
        return self._custom_entries

    def fields(self) -> tuple[FieldSpec, ...]:
        return self._fields

    def labels(self) -> list[str]:
        return [spec.label for spec in self._fields]

    def default_fields(self) -> tuple[FieldSpec, ...]:
        return self._fields[: len(self._config.default_fields)]

    def custom_fields(self) -> tuple[FieldSpec, ...]:
        return self._fields[len(self._config.default_fields) :]

    def get(self, label: str) -> FieldSpec | None:
        normalized = label.strip().lower()
        for spec in self._fields:
            if spec.normalized == normalized:
                return spec
        return None

    def with_custom_fields(self, custom_fields: Iterable[str]) -> FieldRegistry:
        return FieldRegistry(custom_fields, config=self._config)

    def __contains__(self, label: object) -> bool:
        return isinstance(label, str) and self.get(label) is not None

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FieldRegistry({self.labels()!r})"
