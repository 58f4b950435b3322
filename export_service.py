from __future__ import annotations
import csv
import datetime
import html
import io
from typing import Sequence

from models import Exercise, Goal, UserProfile


class ExportService:
    """Render the full performance report as CSV text or printable HTML."""

    TITLE = "RELATÓRIO EVOLUTION - DASHBOARD DE PERFORMANCE"
    EXERCISE_HEADERS = [
        "Nome",
        "Última Carga",
        "Data Última Carga",
        "Recorde Pessoal",
        "Data RP",
        "Volume Médio",
        "Progresso",
    ]
    GOAL_HEADERS = ["Título", "Descrição"]
    PERIOD_LABELS = {"WEEK": "Semanal", "MONTH": "Mensal"}

    @staticmethod
    def _number(value: float) -> str:
        return f"{value:g}"

    @classmethod
    def period_label(cls, timeframe: str) -> str:
        return cls.PERIOD_LABELS.get(timeframe, "Semanal")

    @classmethod
    def exercise_row(cls, ex: Exercise) -> list[str]:
        return [
            ex.name,
            f"{cls._number(ex.last_weight)} kg",
            ex.last_date,
            f"{cls._number(ex.pb_weight)} kg",
            ex.pb_date,
            f"{cls._number(ex.avg_volume)} kg",
            f"{ex.progress}%",
        ]

    @classmethod
    def report_csv(
        cls,
        exercises: Sequence[Exercise],
        goals: Sequence[Goal],
        profile: UserProfile,
        timeframe: str,
    ) -> str:
        """Return the profile, exercise and goal sections as CSV text.

        ``exercises`` should already carry display volumes for ``timeframe``.
        """
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow([cls.TITLE])
        writer.writerow([])
        writer.writerow(["PERFIL DO ATLETA"])
        writer.writerow(["Nome", profile.name])
        writer.writerow(["Peso", f"{cls._number(profile.weight)} kg"])
        writer.writerow(["Nível", profile.level])
        writer.writerow(["Período", cls.period_label(timeframe)])
        writer.writerow([])
        writer.writerow(["EXERCÍCIOS"])
        writer.writerow(cls.EXERCISE_HEADERS)
        for ex in exercises:
            writer.writerow(cls.exercise_row(ex))
        if goals:
            writer.writerow([])
            writer.writerow(["METAS"])
            writer.writerow(cls.GOAL_HEADERS)
            for goal in goals:
                writer.writerow([goal.title, goal.description])
        return buf.getvalue()

    @classmethod
    def report_html(
        cls,
        exercises: Sequence[Exercise],
        goals: Sequence[Goal],
        profile: UserProfile,
        timeframe: str,
        today: datetime.date | None = None,
    ) -> str:
        """Return a self-contained printable HTML document."""
        today = today or datetime.date.today()
        esc = html.escape
        profile_items = [
            ("Nome", profile.name),
            ("Peso", f"{cls._number(profile.weight)} kg"),
            ("Nível", profile.level),
            ("Período", cls.period_label(timeframe)),
        ]
        profile_html = "".join(
            f"<div class='profile-item'><label>{esc(k)}:</label><span>{esc(v)}</span></div>"
            for k, v in profile_items
        )
        header_html = "".join(f"<th>{esc(h)}</th>" for h in cls.EXERCISE_HEADERS)
        rows_html = "".join(
            "<tr>" + "".join(f"<td>{esc(c)}</td>" for c in cls.exercise_row(ex)) + "</tr>"
            for ex in exercises
        )
        goals_html = ""
        if goals:
            cards = "".join(
                f"<div class='goal-card'><h4>{esc(g.title)}</h4><p>{esc(g.description)}</p></div>"
                for g in goals
            )
            goals_html = (
                "<div class='section'><div class='section-title'>Metas e Objetivos</div>"
                f"{cards}</div>"
            )
        return (
            "<!DOCTYPE html><html><head><meta charset='UTF-8'>"
            "<title>Relatório Evolution</title>"
            "<style>"
            "body{font-family:'Courier New',monospace;padding:40px;}"
            "table{width:100%;border-collapse:collapse;}"
            "th,td{padding:8px;border-bottom:1px solid #333;text-align:left;}"
            ".section{margin-bottom:30px;}"
            ".section-title{font-size:18px;text-transform:uppercase;}"
            "</style></head><body>"
            "<div class='header'><h1>EVOLUTION</h1>"
            f"<p>Dashboard de Performance - Relatório Gerado em {today.strftime('%d/%m/%Y')}</p></div>"
            "<div class='section'><div class='section-title'>Perfil do Atleta</div>"
            f"<div class='profile-info'>{profile_html}</div></div>"
            "<div class='section'><div class='section-title'>Exercícios</div>"
            f"<table><thead><tr>{header_html}</tr></thead><tbody>{rows_html}</tbody></table></div>"
            f"{goals_html}"
            "<div class='footer'><p>Relatório gerado automaticamente pelo sistema EVOLUTION</p>"
            f"<p>© {today.year} - Dashboard de Performance para Atletas</p></div>"
            "</body></html>"
        )

    @staticmethod
    def report_filename(kind: str, today: datetime.date | None = None) -> str:
        today = today or datetime.date.today()
        return f"relatorio_evolution_{today.isoformat()}.{kind}"
