"""Pydantic schemas for FPL data validation.

Defines Pydantic models for FPL API rows. The same models are the records
of a Snapshot and drive the SQLite DDL of the store.

Models:
    PlayerSchema - FPL player with position/cost properties
    TeamSchema - FPL team info (name, short_name, strength)
    FixtureSchema - Match fixture with home/away teams and difficulty
    EventSchema - Gameweek calendar entry with current/next flags

Usage:
    from touchline.data.schemas import PlayerSchema

    player = PlayerSchema.model_validate(api_response)
    print(player.position, player.cost_millions)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Type, get_args

from pydantic import BaseModel, ConfigDict

from touchline.config import ELEMENT_TYPE_TO_POS


# Type mapping from Python types to SQLite types
PYTHON_TO_SQLITE: Dict[Type, str] = {
    int: "INTEGER",
    float: "REAL",
    str: "TEXT",
    bool: "INTEGER",
}


def pydantic_to_sqlite_column(field_name: str, field_info: Any) -> str:
    """Convert a Pydantic field to SQLite column definition.

    Args:
        field_name: Name of the field
        field_info: Pydantic FieldInfo object

    Returns:
        SQLite column definition string
    """
    annotation = field_info.annotation

    # Optional is Union[X, None]
    args = get_args(annotation)
    if type(None) in args:
        annotation = next(a for a in args if a is not type(None))

    sqlite_type = PYTHON_TO_SQLITE.get(annotation, "TEXT")
    return f"{field_name} {sqlite_type}"


def schema_to_create_table(
    table_name: str,
    schema: Type[BaseModel],
    extra_columns: Optional[List[str]] = None,
    primary_key: Sequence[str] = ("id",),
) -> str:
    """Generate CREATE TABLE SQL from Pydantic schema.

    Extra columns come first so snapshot tables read
    ``generation_key, id, ...``.

    Args:
        table_name: Name of the SQL table
        schema: Pydantic model class
        extra_columns: Additional column definitions not in schema
        primary_key: Columns of the (possibly composite) primary key

    Returns:
        CREATE TABLE IF NOT EXISTS SQL statement
    """
    columns = list(extra_columns or [])

    for field_name, field_info in schema.model_fields.items():
        columns.append(pydantic_to_sqlite_column(field_name, field_info))

    columns.append(f"PRIMARY KEY ({', '.join(primary_key)})")

    columns_sql = ",\n                ".join(columns)
    return f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                {columns_sql}
            )
        """


def schema_columns(schema: Type[BaseModel]) -> List[str]:
    """Column names of a schema, in declaration order."""
    return list(schema.model_fields)


class PlayerSchema(BaseModel):
    """FPL Player data."""

    model_config = ConfigDict(frozen=True)

    id: int
    first_name: Optional[str] = None
    second_name: Optional[str] = None
    web_name: str
    team: int
    element_type: int
    now_cost: int
    status: str = "a"
    chance_of_playing_next_round: Optional[int] = None
    total_points: int = 0
    minutes: int = 0
    form: float = 0.0
    points_per_game: float = 0.0
    selected_by_percent: float = 0.0

    @property
    def position(self) -> str:
        """Get position string (GKP, DEF, MID, FWD)."""
        return ELEMENT_TYPE_TO_POS.get(self.element_type, "UNK")

    @property
    def cost_millions(self) -> float:
        """Get cost in millions (e.g., 10.5)."""
        return self.now_cost / 10.0


class TeamSchema(BaseModel):
    """FPL Team data."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: Optional[str] = None
    short_name: Optional[str] = None
    strength: Optional[int] = None


class FixtureSchema(BaseModel):
    """FPL Fixture data.

    ``event`` is None for fixtures not yet scheduled into a gameweek.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    event: Optional[int] = None
    team_h: int
    team_a: int
    team_h_difficulty: Optional[int] = None
    team_a_difficulty: Optional[int] = None
    kickoff_time: Optional[str] = None
    finished: bool = False
    team_h_score: Optional[int] = None
    team_a_score: Optional[int] = None


class EventSchema(BaseModel):
    """FPL gameweek (event) calendar entry."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: Optional[str] = None
    deadline_time: Optional[str] = None
    finished: bool = False
    is_previous: bool = False
    is_current: bool = False
    is_next: bool = False


# Record aliases used by the pipeline
PlayerRecord = PlayerSchema
TeamRecord = TeamSchema
FixtureRecord = FixtureSchema
EventRecord = EventSchema
