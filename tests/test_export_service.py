import datetime
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import DerivedMetrics
from export_service import ExportService
from models import Exercise, Goal, UserProfile


class ExportServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.exercises = [
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
            )
        ]
        self.profile = UserProfile()

    def test_csv_without_goals(self) -> None:
        data = ExportService.report_csv(self.exercises, [], self.profile, "WEEK")
        self.assertEqual(
            data.splitlines(),
            [
                "RELATÓRIO EVOLUTION - DASHBOARD DE PERFORMANCE",
                "",
                "PERFIL DO ATLETA",
                "Nome,Atleta Evolution",
                "Peso,85 kg",
                "Nível,Intermediário",
                "Período,Semanal",
                "",
                "EXERCÍCIOS",
                "Nome,Última Carga,Data Última Carga,Recorde Pessoal,Data RP,"
                "Volume Médio,Progresso",
                "Supino Reto,80 kg,12 Out,95 kg,01 Set,2.4 kg,85%",
            ],
        )

    def test_csv_with_goals_and_month_volume(self) -> None:
        scaled = DerivedMetrics.scale_for_timeframe(self.exercises, "MONTH")
        goals = [Goal(id="g1", title="Supino 100kg", description="Ate dezembro")]
        lines = ExportService.report_csv(scaled, goals, self.profile, "MONTH").splitlines()
        self.assertIn("Período,Mensal", lines)
        self.assertIn("Supino Reto,80 kg,12 Out,95 kg,01 Set,10.3 kg,85%", lines)
        self.assertEqual(
            lines[-3:], ["METAS", "Título,Descrição", "Supino 100kg,Ate dezembro"]
        )

    def test_html_escapes_and_dates(self) -> None:
        profile = UserProfile(name="<Ana>")
        goals = [Goal(id="g1", title="A & B", description="x")]
        page = ExportService.report_html(
            self.exercises, goals, profile, "WEEK", datetime.date(2024, 10, 15)
        )
        self.assertIn("&lt;Ana&gt;", page)
        self.assertNotIn("<Ana>", page)
        self.assertIn("A &amp; B", page)
        self.assertIn("Relatório Gerado em 15/10/2024", page)
        self.assertIn("<td>Supino Reto</td>", page)
        no_goals = ExportService.report_html(self.exercises, [], profile, "WEEK")
        self.assertNotIn("Metas e Objetivos", no_goals)

    def test_filename(self) -> None:
        self.assertEqual(
            ExportService.report_filename("csv", datetime.date(2024, 10, 15)),
            "relatorio_evolution_2024-10-15.csv",
        )


if __name__ == "__main__":
    unittest.main()
