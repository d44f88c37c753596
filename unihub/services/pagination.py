"""Page/limit handling shared by every list endpoint."""

import math
from dataclasses import dataclass
from typing import Any, List


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 20

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def envelope(self, items: List[Any], total: int, **extra) -> dict:
        """Build the {items, count, total, page, limit, totalPages} payload."""
        data = {
            "items": items,
            "count": len(items),
            "total": total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": math.ceil(total / self.limit) if self.limit else 0,
        }
        data.update(extra)
        return data
