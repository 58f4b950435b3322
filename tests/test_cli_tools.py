import asyncio
import os
import sys
import unittest
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import (
    analysis_table,
    backup_db,
    coaching_tip,
    demo_data,
    export_report,
    restore_db,
)
from rest_api import EvolutionAPI

class CLIToolsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_cli.db"
        self.yaml_path = "test_cli.yaml"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        if os.path.exists(self.yaml_path):
            os.remove(self.yaml_path)

    def tearDown(self) -> None:
        for path in [self.db_path, self.yaml_path, "backup.db", "exports"]:
            if os.path.exists(path):
                if os.path.isdir(path):
                    for f in os.listdir(path):
                        os.remove(os.path.join(path, f))
                    os.rmdir(path)
                else:
                    os.remove(path)

    def test_export_backup_restore(self) -> None:
        os.makedirs("exports", exist_ok=True)
        demo_data(self.db_path, self.yaml_path)
        out = export_report(self.db_path, self.yaml_path, "csv", "MONTH", "exports")
        self.assertTrue(os.path.exists(out))
        with open(out, encoding="utf-8") as f:
            text = f.read()
        self.assertIn("Supino Reto,80 kg,12 Out,95 kg,01 Set,10.3 kg,85%", text)
        html_out = export_report(self.db_path, self.yaml_path, "html", "WEEK", "exports")
        self.assertTrue(html_out.endswith(".html"))
        backup_db(self.db_path, "backup.db")
        self.assertTrue(os.path.exists("backup.db"))
        os.remove(self.db_path)
        restore_db("backup.db", self.db_path)
        self.assertTrue(os.path.exists(self.db_path))

    def test_demo_data(self) -> None:
        demo_data(self.db_path, self.yaml_path)
        demo_data(self.db_path, self.yaml_path)
        api2 = EvolutionAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        exercises = asyncio.run(api2.exercise_store.load())
        self.assertEqual(
            [ex.name for ex in exercises],
            ["Supino Reto", "Levantamento Terra", "Agachamento Livre"],
        )
        self.assertEqual(
            [log.type for log in exercises[0].history], ["LOAD", "PR", "LOAD"]
        )

    def test_tip_and_analysis(self) -> None:
        self.assertTrue(coaching_tip(self.db_path, self.yaml_path).startswith("Inicie"))
        demo_data(self.db_path, self.yaml_path)
        text = coaching_tip(self.db_path, self.yaml_path, deep=True)
        self.assertIn("83.3%", text)
        self.assertIn("9.0k", text)
        table = analysis_table(self.db_path, self.yaml_path, "ALL", "YEAR", "name")
        lines = table.splitlines()
        self.assertTrue(lines[0].startswith("Exercicio,Categoria"))
        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[1].startswith("Agachamento Livre"))

if __name__ == "__main__":
    unittest.main()
