import math

from .schemas import PacketOut, PacketPage
from .search import DateHeuristicParser, day_bounds
from .store import DateRangeFilter, PacketFilter, PacketStore, Pagination, TextFilter


def build_filter(search: str, parser: DateHeuristicParser) -> PacketFilter:
    """A search that parses as a date always filters by day, never by text."""

    day = parser.parse(search)
    if day is not None:
        return DateRangeFilter(*day_bounds(day))
    if search:
        return TextFilter(search)
    return None


class QueryEngine:
    def __init__(self, store: PacketStore, parser: DateHeuristicParser | None = None) -> None:
        self.store = store
        self.parser = parser or DateHeuristicParser()

    async def run(self, page: int = 1, limit: int = 25, search: str = "") -> PacketPage:
        pagination = Pagination(skip=(page - 1) * limit, limit=limit)
        packets, total = await self.store.query(build_filter(search, self.parser), pagination)
        return PacketPage(
            packets=[
                PacketOut(id=p.id, timestamp=p.received_at, message=p.message, frequency=p.frequency)
                for p in packets
            ],
            total=total,
            page=page,
            pages=math.ceil(total / limit),
        )
