import unittest
import sys
import os
import datetime
from fastapi.testclient import TestClient
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import EvolutionClient
from rest_api import EvolutionAPI

class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = 'test_client.db'
        self.yaml_path = 'test_client.yaml'
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = EvolutionAPI(
            db_path=self.db_path,
            yaml_path=self.yaml_path,
            clock=lambda: datetime.datetime(2024, 10, 15, 12, 0),
        )
        self.client = EvolutionClient(
            base_url='http://testserver', session=TestClient(self.api.app)
        )

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_exercise_roundtrip(self) -> None:
        ex = self.client.add_exercise(
            'Supino Reto', 'Peito / Empurrar', last_weight=80, last_date='12 Out'
        )
        self.assertEqual(self.client.list_exercises()[0]['id'], ex['id'])
        updated = self.client.update_exercise(ex['id'], last_weight=82.5)
        self.assertEqual(updated['last_weight'], 82.5)
        self.assertEqual(len(updated['history']), 1)
        summary = self.client.analysis(window='WEEK')
        self.assertEqual(summary['count'], 1)
        self.client.delete_exercise(ex['id'])
        self.assertEqual(self.client.list_exercises(), [])

    def test_goals_profile_and_reports(self) -> None:
        goal = self.client.add_goal('Meta', 'Descricao')
        self.assertEqual(self.client.list_goals(), [goal])
        self.client.delete_goal(goal['id'])
        self.client.update_profile('Ana', 62.0, 'Elite')
        report = self.client.export_report('csv')
        self.assertIn('Nome,Ana', report)
        self.assertTrue(self.client.coaching_tip().startswith('Inicie'))

    def test_errors_raise(self) -> None:
        with self.assertRaises(Exception):
            self.client.update_exercise('missing', last_weight=1)

if __name__ == '__main__':
    unittest.main()
