import asyncio
import datetime

from models import Exercise, WeightLog

SAMPLE_EXERCISES = [
    Exercise(
        id="1",
        name="Supino Reto",
        category="Peito / Empurrar",
        last_weight=80,
        last_date="12 Out",
        pb_weight=95,
        pb_date="01 Set",
        avg_volume=2.4,
        progress=85,
        history=[
            WeightLog(weight=75, date="05 Out", type="LOAD"),
            WeightLog(weight=90, date="20 Set", type="PR"),
            WeightLog(weight=70, date="15 Set", type="LOAD"),
        ],
    ),
    Exercise(
        id="2",
        name="Levantamento Terra",
        category="Costas / Puxar",
        last_weight=120,
        last_date="10 Out",
        pb_weight=140,
        pb_date="25 Ago",
        avg_volume=3.6,
        progress=90,
        history=[
            WeightLog(weight=110, date="01 Out", type="LOAD"),
            WeightLog(weight=100, date="15 Set", type="LOAD"),
        ],
    ),
    Exercise(
        id="3",
        name="Agachamento Livre",
        category="Pernas / Empurrar",
        last_weight=100,
        last_date="08 Out",
        pb_weight=115,
        pb_date="15 Set",
        avg_volume=3.0,
        progress=75,
        history=[WeightLog(weight=90, date="25 Set", type="LOAD")],
    ),
]


async def seed(api) -> bool:
    """Insert the sample exercises for the API's user when it has none."""
    await api.exercise_store.load()
    if api.exercise_store.exercises:
        return False
    now = datetime.datetime.now(datetime.timezone.utc)
    for idx, sample in enumerate(SAMPLE_EXERCISES):
        await api.exercise_repo.add(
            api.user_id,
            f"{api.user_id}-{sample.id}",
            sample.name,
            sample.category,
            sample.last_weight,
            sample.last_date,
            sample.pb_weight,
            sample.pb_date,
            sample.avg_volume,
            sample.progress,
            created_at=(now - datetime.timedelta(seconds=idx)).isoformat(),
        )
        for log in reversed(sample.history):
            await api.weight_logs.add(
                f"{api.user_id}-{sample.id}", log.weight, log.type, log.date
            )
    await api.exercise_store.load()
    return True


if __name__ == "__main__":
    from rest_api import EvolutionAPI

    inserted = asyncio.run(seed(EvolutionAPI()))
    print("Seed data inserted" if inserted else "Database already contains exercises")
