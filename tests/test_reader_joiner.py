"""Tests for the detail row reader and the retrieve-time joiner."""

from unittest.mock import AsyncMock

import pytest

from detail_sync.config.models import DetailDef, JoinField
from detail_sync.errors import ConfigError
from detail_sync.sync.joiner import attach_details
from detail_sync.sync.reader import ALL_JOINED, DetailRowReader


class TestDetailRowReader:
    async def test_native_columns_only_by_default(self, cast_def, client) -> None:
        reader = DetailRowReader(cast_def)
        rows = await reader.list_by_master_id(client, 2)
        assert [r["id"] for r in rows] == [11, 12, 13]
        assert all("actor_name" not in r for r in rows)

    async def test_scoped_to_master(self, cast_def, client) -> None:
        reader = DetailRowReader(cast_def)
        rows = await reader.list_by_master_id(client, 1)
        assert [r["id"] for r in rows] == [10]

    async def test_all_joined_fields(self, cast_def, client) -> None:
        reader = DetailRowReader(cast_def)
        rows = await reader.list_by_master_id(client, 2, extra_fields=ALL_JOINED)
        assert [r["actor_name"] for r in rows] == [
            "Keanu Reeves",
            "Laurence Fishburne",
            "Carrie-Anne Moss",
        ]

    async def test_named_extra_fields_passed_as_joins(self, cast_def) -> None:
        conn = AsyncMock()
        conn.select = AsyncMock(return_value=[])
        reader = DetailRowReader(cast_def)

        await reader.list_by_master_id(conn, 2, extra_fields=["actor_name"])

        kwargs = conn.select.call_args.kwargs
        assert conn.select.call_args.args[:2] == ("movie_cast", "*")
        assert kwargs["filters"] == {"movie_id": 2}
        assert [j.name for j in kwargs["joins"]] == ["actor_name"]

    async def test_no_joins_passes_none(self, cast_def) -> None:
        conn = AsyncMock()
        conn.select = AsyncMock(return_value=[])
        await DetailRowReader(cast_def).list_by_master_id(conn, 2)
        assert conn.select.call_args.kwargs["joins"] is None

    def test_unknown_extra_field_rejected(self, cast_def) -> None:
        reader = DetailRowReader(cast_def)
        with pytest.raises(ConfigError, match="nickname"):
            reader.resolve_joins(["nickname"])

    async def test_order_by_from_descriptor(self, client) -> None:
        detail = DetailDef(
            name="cast",
            table="movie_cast",
            master_field="movie_id",
            order_by="character",
        )
        rows = await DetailRowReader(detail).list_by_master_id(client, 2)
        assert [r["character"] for r in rows] == ["Morpheus", "Neo", "Trinity"]

    async def test_descending_order_with_joins(self, client) -> None:
        detail = DetailDef(
            name="cast",
            table="movie_cast",
            master_field="movie_id",
            order_by="character DESC",
            joins=[
                JoinField(
                    name="actor_name", table="people", column="name", foreign_key="person_id"
                ),
            ],
        )
        rows = await DetailRowReader(detail).list_by_master_id(
            client, 2, extra_fields=ALL_JOINED
        )
        assert [r["character"] for r in rows] == ["Trinity", "Neo", "Morpheus"]
        assert rows[0]["actor_name"] == "Carrie-Anne Moss"

    async def test_list_ids(self, cast_def, client) -> None:
        ids = await DetailRowReader(cast_def).list_ids_by_master_id(client, 2)
        assert ids == [11, 12, 13]

    async def test_list_ids_selects_pk_only(self, cast_def) -> None:
        conn = AsyncMock()
        conn.select = AsyncMock(return_value=[{"id": 11}])
        await DetailRowReader(cast_def).list_ids_by_master_id(conn, 2)
        assert conn.select.call_args.args[:2] == ("movie_cast", "id")


class TestAttachDetails:
    async def test_detail_rows_carry_display_name(self, cast_def, client) -> None:
        """A row storing only person_id comes back with the person's name."""
        master = {"id": 2, "title": "The Matrix"}
        await attach_details(client, master, cast_def, DetailRowReader(cast_def))

        cast = master["cast"]
        assert [(r["person_id"], r["actor_name"]) for r in cast] == [
            (1, "Keanu Reeves"),
            (2, "Laurence Fishburne"),
            (3, "Carrie-Anne Moss"),
        ]

    async def test_unknown_reference_yields_none(self, cast_def, client) -> None:
        client.tables["movie_cast"].append(
            {"id": 20, "movie_id": 1, "person_id": 99, "character": "Extra"}
        )
        master = {"id": 1}
        await attach_details(client, master, cast_def, DetailRowReader(cast_def))
        assert master["cast"][-1]["actor_name"] is None

    async def test_master_without_id_untouched(self, cast_def) -> None:
        conn = AsyncMock()
        master = {"id": None, "title": "Draft"}
        result = await attach_details(conn, master, cast_def, DetailRowReader(cast_def))
        assert result is master
        assert "cast" not in master
        conn.select.assert_not_called()

    async def test_empty_detail_list(self, cast_def, client) -> None:
        master = {"id": 3}
        await attach_details(client, master, cast_def, DetailRowReader(cast_def))
        assert master["cast"] == []

    async def test_custom_collection_and_master_pk(self, client) -> None:
        detail = DetailDef(
            name="cast",
            table="movie_cast",
            master_field="movie_id",
            collection="actors",
            joins=[
                JoinField(name="actor_name", table="people", column="name",
                          foreign_key="person_id"),
            ],
        )
        master = {"movie_key": 1}
        await attach_details(
            client, master, detail, DetailRowReader(detail), master_pk="movie_key"
        )
        assert [r["actor_name"] for r in master["actors"]] == ["Keanu Reeves"]
