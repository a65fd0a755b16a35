import importlib.util
import sys
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

MAIN_PATH = Path(__file__).resolve().parent.parent / "local-react" / "backend" / "main.py"


def load_app():
    spec = importlib.util.spec_from_file_location("disperse_backend_main", MAIN_PATH)
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module.app


ADDR_A = "0x" + "a" * 40
ADDR_B = "0x" + "b" * 40


class ApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(load_app())

    def test_health(self):
        r = self.client.get("/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"status": "ok"})

    def test_parse(self):
        r = self.client.post("/parse", json={"lines": [f"{ADDR_A}=1.5", "x=abc"]})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body[0]["recipient"], ADDR_A)
        self.assertEqual(body[0]["amount_value"], "1.5")
        self.assertEqual(body[1]["line"], 2)
        self.assertIsNone(body[1]["amount_value"])

    def test_validate(self):
        r = self.client.post("/validate", json={"lines": [f"{ADDR_A}=5", "abc=1", f"{ADDR_A} 7"]})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(
            body["errors"],
            [
                "Line 2 invalid Ethereum address and wrong amount",
                "Line 2 invalid Ethereum address",
                f"{ADDR_A} Duplicates in Line: 1, 3",
            ],
        )
        self.assertTrue(body["has_duplicates"])
        self.assertFalse(body["is_clean"])
        self.assertEqual(body["recipients"], 1)
        self.assertEqual(body["total"], "12")

    def test_validate_amount_out_of_range(self):
        r = self.client.post("/validate", json={"lines": [f"{ADDR_A}=1e999999999"]})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["errors"], [])
        self.assertEqual(body["total"], "0")
        self.assertEqual(body["skipped"], 1)

    def test_dedupe(self):
        lines = [f"{ADDR_A}=5", f"{ADDR_B}=1", f"{ADDR_A},7"]
        r = self.client.post("/dedupe/keep-first", json={"lines": lines})
        self.assertEqual(r.json(), {"lines": [f"{ADDR_A}=5", f"{ADDR_B}=1"]})
        r = self.client.post("/dedupe/combine", json={"lines": lines})
        self.assertEqual(r.json(), {"lines": [f"{ADDR_A}=12", f"{ADDR_B}=1"]})

    def test_paste(self):
        r = self.client.post("/paste", json={"lines": ["keep"], "index": 0, "text": f"{ADDR_A}=1\n\n{ADDR_B}=2"})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"lines": [f"{ADDR_A}=1", f"{ADDR_B}=2", "keep"], "focused_index": 2, "inserted": 2})

    def test_paste_bad_index(self):
        r = self.client.post("/paste", json={"lines": ["a"], "index": 5, "text": "x"})
        self.assertEqual(r.status_code, 400)

    def test_malformed_body(self):
        r = self.client.post("/validate", json={"lines": "not a list"})
        self.assertEqual(r.status_code, 422)


if __name__ == "__main__":
    unittest.main()
