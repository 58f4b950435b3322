import os
import sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    AsyncBaseRepository,
    AsyncExerciseRepository,
    AsyncGoalRepository,
    AsyncProfileRepository,
    AsyncWeightLogRepository,
    Database,
)

class NumberRepository(AsyncBaseRepository):
    async def init_db(self) -> None:
        async with self._async_connection() as conn:
            await conn.execute("CREATE TABLE IF NOT EXISTS numbers (val INTEGER)")
            await conn.commit()

    async def add(self, val: int) -> int:
        return await self.execute("INSERT INTO numbers (val) VALUES (?)", (val,))

    async def all(self):
        rows = await self.fetch_all("SELECT val FROM numbers")
        return [r[0] for r in rows]

@pytest.mark.asyncio
async def test_async_repository(tmp_path):
    repo = NumberRepository(str(tmp_path / "test.db"))
    await repo.init_db()
    await repo.add(5)
    assert await repo.all() == [5]


@pytest.mark.asyncio
async def test_async_exercise_repo(tmp_path):
    db_file = str(tmp_path / "exercises.db")
    repo = AsyncExerciseRepository(db_file)
    await repo.add("u1", "a", "Supino", "Peito", 80, "12 Out", 95, "01 Set", 2.4, 70,
                   created_at="2024-10-01T00:00:00")
    await repo.add("u1", "b", "Terra", "Costas", created_at="2024-10-02T00:00:00")
    await repo.add("u2", "c", "Remada", "Costas")
    rows = await repo.fetch_for_user("u1")
    assert [r[0] for r in rows] == ["b", "a"]
    assert rows[1] == ("a", "Supino", "Peito", 80.0, "12 Out", 95.0, "01 Set", 2.4, 70)

    await repo.update("a", name="Supino Reto", last_weight=82.5)
    detail = (await repo.fetch_for_user("u1"))[1]
    assert detail[1] == "Supino Reto"
    assert detail[3] == 82.5
    with pytest.raises(ValueError):
        await repo.update("a", user_id="u2")
    with pytest.raises(ValueError):
        await repo.update("missing", name="x")

    await repo.remove("a")
    assert [r[0] for r in await repo.fetch_for_user("u1")] == ["b"]


@pytest.mark.asyncio
async def test_async_weight_log_repo(tmp_path):
    db_file = str(tmp_path / "logs.db")
    exercises = AsyncExerciseRepository(db_file)
    logs = AsyncWeightLogRepository(db_file)
    await exercises.add("u1", "a", "Supino", "Peito")
    await logs.add("a", 70, "LOAD", "15 Set")
    await logs.add("a", 90, "PR", "20 Set")
    await logs.add("a", 85, "PR", "22 Set")
    await logs.add("a", 75, "LOAD", "05 Out")
    assert await logs.fetch_recent("a") == [
        (75.0, "05 Out", "LOAD"),
        (85.0, "22 Set", "PR"),
        (90.0, "20 Set", "PR"),
    ]
    assert len(await logs.fetch_recent("a", 10)) == 4
    with pytest.raises(ValueError):
        await logs.add("a", 1, "MAX", "01 Jan")
    assert await logs.fetch_recent("missing") == []


@pytest.mark.asyncio
async def test_async_profile_and_goal_repos(tmp_path):
    db_file = str(tmp_path / "profile.db")
    profiles = AsyncProfileRepository(db_file)
    assert await profiles.fetch("u1") is None
    await profiles.save("u1", "Ana", 62.0, "Elite", None)
    await profiles.save("u1", "Ana", 63.0, "Elite", "data:image/png;base64,AA")
    assert await profiles.fetch("u1") == ("Ana", 63.0, "Elite", "data:image/png;base64,AA")

    goals = AsyncGoalRepository(db_file)
    await goals.add("u1", "g1", "Meta", "Descricao", created_at="2024-01-01")
    await goals.add("u1", "g2", "Outra", "Mais", created_at="2024-01-02")
    assert await goals.fetch_for_user("u1") == [
        ("g2", "Outra", "Mais"),
        ("g1", "Meta", "Descricao"),
    ]
    await goals.delete("g1")
    await goals.delete("g1")
    assert len(await goals.fetch_for_user("u1")) == 1


def test_pg_query_placeholders():
    query = "SELECT * FROM exercises WHERE id = ? AND user_id = ?;"
    assert Database._pg_query(query) == (
        "SELECT * FROM exercises WHERE id = %s AND user_id = %s;"
    )
    assert Database._pg_query(query, "numeric") == (
        "SELECT * FROM exercises WHERE id = $1 AND user_id = $2;"
    )
