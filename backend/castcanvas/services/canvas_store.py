"""Canvas Store — coordinate -> latest Pixel, in memory or in SQL.

Invariants:
    - At most one Pixel per (x, y); a write replaces the previous pixel entirely
    - place() validates bounds and colour before touching state (InvalidInputError)
    - place() never checks or consumes quota — PlacementService does that first
    - Writes to the same coordinate are serialized; unrelated coordinates never contend
    - get() is a read-only snapshot

Design Decisions:
    - Sparse dict keyed by (x, y): a 1000x1000 canvas is mostly empty
    - SQL backend upserts on the (x, y) primary key (ON CONFLICT DO UPDATE on
      PostgreSQL/SQLite, session.merge elsewhere), so a second process writing the
      same cell cannot produce a duplicate row
    - Clock injected (not datetime.now inline): tests pin written_at
"""

from collections.abc import Callable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite

from castcanvas.core.domain_types import Pixel, UserId, as_utc, utc_now
from castcanvas.core.enforce_input import validate_placement
from castcanvas.infrastructure.database import DatabaseSessionManager
from castcanvas.models.pixel import PixelRow
from castcanvas.services.keyed_locks import KeyedLocks

Clock = Callable[[], datetime]


class InMemoryCanvasStore:
    """Process-local canvas. Lifetime = process."""

    def __init__(self, canvas_size: int = 1000, clock: Clock = utc_now):
        self.canvas_size = canvas_size
        self._clock = clock
        self._pixels: dict[tuple[int, int], Pixel] = {}
        self._locks = KeyedLocks()

    def validate(self, x: int, y: int, color: str) -> None:
        validate_placement(x, y, color, self.canvas_size)

    async def get(self) -> list[Pixel]:
        return list(self._pixels.values())

    async def count(self) -> int:
        return len(self._pixels)

    async def place(self, x: int, y: int, color: str, owner: UserId) -> Pixel:
        self.validate(x, y, color)
        async with self._locks.acquire((x, y)):
            pixel = Pixel(x=x, y=y, color=color, owner=owner, written_at=self._clock())
            # pop first so the new write also moves to the end of the snapshot order
            self._pixels.pop((x, y), None)
            self._pixels[(x, y)] = pixel
        return pixel


class SqlCanvasStore:
    """Canvas persisted in the `pixels` table."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        canvas_size: int = 1000,
        clock: Clock = utc_now,
    ):
        self.canvas_size = canvas_size
        self._db = db
        self._clock = clock
        self._locks = KeyedLocks()

    def validate(self, x: int, y: int, color: str) -> None:
        validate_placement(x, y, color, self.canvas_size)

    async def get(self) -> list[Pixel]:
        async with self._db.session() as session:
            result = await session.execute(
                select(PixelRow).order_by(PixelRow.written_at),
            )
            return [_to_pixel(row) for row in result.scalars().all()]

    async def count(self) -> int:
        async with self._db.session() as session:
            result = await session.execute(select(func.count()).select_from(PixelRow))
            return int(result.scalar_one())

    async def place(self, x: int, y: int, color: str, owner: UserId) -> Pixel:
        self.validate(x, y, color)
        pixel = Pixel(x=x, y=y, color=color, owner=owner, written_at=self._clock())
        values = {
            "x": x, "y": y, "color": color,
            "owner": owner, "written_at": pixel.written_at,
        }
        async with self._locks.acquire((x, y)):
            async with self._db.session() as session:
                dialect = session.bind.dialect.name
                if dialect in ("postgresql", "sqlite"):
                    insert = (
                        postgresql.insert if dialect == "postgresql" else sqlite.insert
                    )
                    stmt = insert(PixelRow).values(**values)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[PixelRow.x, PixelRow.y],
                        set_={
                            "color": stmt.excluded.color,
                            "owner": stmt.excluded.owner,
                            "written_at": stmt.excluded.written_at,
                        },
                    )
                    await session.execute(stmt)
                else:
                    await session.merge(PixelRow(**values))
                await session.commit()
        return pixel


def _to_pixel(row: PixelRow) -> Pixel:
    return Pixel(
        x=row.x, y=row.y, color=row.color,
        owner=UserId(row.owner), written_at=as_utc(row.written_at),
    )
