from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LineResult:
    """Fields extracted from a single input line.

    - values: field key to captured text. Keys are positional indexes
      ("0", "1", ...) or names bound by named groups.

    Looking up a key that was never captured returns an empty string.
    """
    values: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str:
        return self.values.get(key, "")

    def __getitem__(self, key: str) -> str:
        return self.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def __len__(self) -> int:
        return len(self.values)

    def as_mapping(self) -> dict[str, str]:
        """Return a copy of the captured fields."""
        return dict(self.values)
