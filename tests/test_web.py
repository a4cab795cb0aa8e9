import tempfile
import unittest
from pathlib import Path

from meetnotes.config import AppConfig, save_config
from meetnotes.models import ProjectConfig

try:
    from fastapi.testclient import TestClient
except ImportError:  # web extra not installed
    TestClient = None


@unittest.skipIf(TestClient is None, "fastapi not installed")
class TestWebServer(unittest.TestCase):
    def setUp(self):
        from meetnotes.web.server import create_app

        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.config_path = root / "config.json"
        save_config(
            AppConfig(storage_base_path=str(root / "notes"), projects=[ProjectConfig(name="work", path="work")]),
            self.config_path,
        )
        self.client = TestClient(create_app(config_path=self.config_path))

    def tearDown(self):
        self._tmp.cleanup()

    def test_lists_tools(self):
        r = self.client.get("/api/tools")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.json()["tools"]), 24)

    def test_call_tool_and_graph(self):
        r = self.client.post("/api/tools/add_note", json={"project": "work", "title": "Alpha", "content": "Hello"})
        self.assertEqual(r.status_code, 200)
        note_id = r.json()["note"]["id"]

        graph = self.client.get("/api/graph", params={"project": "work"}).json()
        self.assertEqual([n["id"] for n in graph["nodes"]], [note_id])
        self.assertEqual(graph["edges"], [])

    def test_errors(self):
        self.assertEqual(self.client.post("/api/tools/nope", json={}).status_code, 404)
        r = self.client.post("/api/tools/get_note", json={"project": "work", "note_id": "x"})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"success": False, "error": "Note not found"})


if __name__ == "__main__":
    unittest.main()
