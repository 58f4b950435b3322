import requests
from typing import Optional


class EvolutionClient:
    """Simple REST client for the dashboard API."""

    def __init__(self, base_url: str = "http://localhost:8000", session=None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **params):
        resp = self.session.request(
            method,
            f"{self.base_url}{path}",
            params={k: v for k, v in params.items() if v is not None},
        )
        resp.raise_for_status()
        return resp

    def list_exercises(self, timeframe: str = "WEEK") -> list[dict]:
        return self._request("GET", "/exercises", timeframe=timeframe).json()

    def add_exercise(self, name: str, category: str, **fields: float | str) -> dict:
        return self._request(
            "POST", "/exercises", name=name, category=category, **fields
        ).json()

    def update_exercise(self, exercise_id: str, **fields: float | str) -> dict:
        return self._request("PUT", f"/exercises/{exercise_id}", **fields).json()

    def delete_exercise(self, exercise_id: str) -> None:
        self._request("DELETE", f"/exercises/{exercise_id}")

    def list_goals(self) -> list[dict]:
        return self._request("GET", "/goals").json()

    def add_goal(self, title: str, description: str) -> dict:
        return self._request("POST", "/goals", title=title, description=description).json()

    def delete_goal(self, goal_id: str) -> None:
        self._request("DELETE", f"/goals/{goal_id}")

    def coaching_tip(self) -> str:
        return self._request("GET", "/coach/tip").json()["tip"]

    def analysis(
        self, category: str = "ALL", window: Optional[str] = None, **params
    ) -> dict:
        return self._request(
            "GET", "/analysis", category=category, window=window, **params
        ).json()

    def export_report(self, fmt: str = "csv", timeframe: str = "WEEK") -> str:
        return self._request("GET", f"/export/{fmt}", timeframe=timeframe).text

    def update_profile(
        self, name: str, weight: float, level: str, photo: Optional[str] = None
    ) -> None:
        self._request(
            "PUT", "/profile", name=name, weight=weight, level=level, photo=photo
        )
