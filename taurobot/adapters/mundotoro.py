"""Mundotoro - bullfighter ranking (escalafón).

Source: https://www.mundotoro.com/escalafon-toreros
Fetch: headless, fresh browser per scrape (anti-bot protected)

Column layout of the ranking table:
    0: No.  1: Lidiador  2: Festejos  3: Orejas  4: Rabos
    5-7: festejos per category  8-10: orejas per category  11: reses lidiadas

The table has been served as a classic <table>, without <tbody> and as
``role="table"`` divs, so the container is found with a heuristic cascade and
rows/cells are probed with fallbacks.
"""

import re

from bs4 import BeautifulSoup

from taurobot.adapters import register_adapter
from taurobot.core.extraction import (
    BaseExtractor,
    FirstPopulatedTable,
    Heuristic,
    cell_text,
    find_cells,
    find_rows,
    parse_int,
    parse_positive_int,
    select_container,
)
from taurobot.core.models import RankingEntry

HEADER_KEYWORDS = re.compile(r"posici|torero|lidiador|festejos|orejas|rabos", re.IGNORECASE)

TABLE_CASCADE = [
    Heuristic("table.listadoTabla", HEADER_KEYWORDS),
    Heuristic("table#sorter", HEADER_KEYWORDS),
    Heuristic('div[role="table"]', HEADER_KEYWORDS),
    Heuristic(".tablalistado", HEADER_KEYWORDS),
    Heuristic(".table-responsive table", HEADER_KEYWORDS),
    Heuristic(".wp-block-table table", HEADER_KEYWORDS),
    Heuristic("section table", HEADER_KEYWORDS),
    Heuristic("table", HEADER_KEYWORDS),
    FirstPopulatedTable(),
]

POSITION_COL = 0
NAME_COL = 1
TAILS_COL = 4
FEATS_COLS = (5, 6, 7)
EARS_COLS = (8, 9, 10)


@register_adapter("mundotoro")
class MundotoroExtractor(BaseExtractor[RankingEntry]):
    """Extractor for the ranking table."""

    base_url = "https://www.mundotoro.com/escalafon-toreros"
    record_model = RankingEntry

    def parse(self, soup: BeautifulSoup) -> list[RankingEntry]:
        table = select_container(soup, TABLE_CASCADE)
        if table is None:
            self.logger.warning("ranking_table_not_found")
            return []

        rows = find_rows(table)
        self.logger.info("ranking_rows_detected", rows=len(rows))

        rankings: list[RankingEntry] = []
        for row in rows:
            cells = find_cells(row)
            position = parse_positive_int(cell_text(cells, POSITION_COL))
            name = cell_text(cells, NAME_COL)
            if position is None or not name:
                continue

            feats = sum(parse_int(cell_text(cells, i)) for i in FEATS_COLS)
            ears = sum(parse_int(cell_text(cells, i)) for i in EARS_COLS)
            tails = parse_int(cell_text(cells, TAILS_COL))

            rankings.append(
                RankingEntry(
                    position=str(position),
                    name=name,
                    feats=str(feats),
                    ears=str(ears),
                    tails=str(tails),
                )
            )

        return rankings
