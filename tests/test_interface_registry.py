import asyncio
import tempfile
import threading
import unittest
from pathlib import Path

from hotapi.kernel.errors import RegistryError
from hotapi.registry.compiler import UnitCompiler
from hotapi.registry.interfaces import InterfaceRegistry
from hotapi.registry.sandbox import Sandbox

from tests._registry_support import make_registry, write_source


CREATE_V1 = """
async def method(*, name):
    return {"id": 1, "name": name}
"""

CREATE_V2 = """
async def method(*, name, email):
    return {"id": 2, "name": name, "email": email}
"""


class InterfaceRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "api"
        self.root.mkdir()
        self.registry, self.api, self.logger = make_registry(self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_requires_mutable_namespace(self) -> None:
        with self.assertRaises(RegistryError):
            InterfaceRegistry(self.root, None)  # type: ignore[arg-type]
        with self.assertRaises(RegistryError):
            InterfaceRegistry(self.root, Sandbox(api=None))  # type: ignore[arg-type]

    def test_versioned_lifecycle(self) -> None:
        v1 = write_source(self.root / "users.1" / "create.py", CREATE_V1)
        self.registry.change(v1)
        self.assertTrue(callable(self.api["users"]["create"]))
        self.assertEqual(asyncio.run(self.api["users"]["create"](name="ann")), {"id": 1, "name": "ann"})
        self.assertEqual(self.registry.signatures["users"]["create"], ["name"])
        self.assertEqual(self.registry.default_version("users"), 1)

        v2 = write_source(self.root / "users.2" / "create.py", CREATE_V2)
        self.registry.change(v2)
        self.assertEqual(self.registry.default_version("users"), 2)
        self.assertEqual(self.registry.versions("users"), [1, 2])
        first = self.registry.get_method("users", "create", version=1)
        self.assertIsNotNone(first)
        assert first is not None
        self.assertEqual(asyncio.run(first.method(name="bo"))["id"], 1)
        latest = self.registry.get_method("users", "create")
        assert latest is not None
        self.assertEqual(asyncio.run(latest.method(name="bo", email="b@x"))["id"], 2)

        v1.unlink()
        self.registry.delete(v1)
        self.assertIsNone(self.registry.get_method("users", "create", version=1))
        self.assertIsNotNone(self.registry.get_method("users", "create", version=2))
        self.assertEqual(self.registry.default_version("users"), 2)
        self.assertIs(self.api["users"]["create"], latest.method)
        self.assertEqual(self.registry.signature("users", "create"), ["name", "email"])

    def test_delete_is_idempotent(self) -> None:
        path = write_source(self.root / "users.1" / "remove.py", "def method(*, id):\n    return id")
        self.registry.change(path)
        self.registry.delete(path)
        after_first = (dict(self.api["users"]), self.registry.signatures)
        self.registry.delete(path)
        self.assertEqual((dict(self.api["users"]), self.registry.signatures), after_first)
        self.assertNotIn("remove", self.api["users"])
        self.assertIsNone(self.registry.signature("users", "remove"))
        self.assertEqual(self.registry.versions("users"), [1])

    def test_delete_of_unknown_entries_is_a_noop(self) -> None:
        self.registry.delete(self.root / "ghost.1" / "boo.py")
        self.registry.delete(self.root / "users.1" / "notes.txt")
        self.registry.delete(self.root / "users.1.py")
        self.assertEqual(self.api, {})
        self.assertEqual(self.registry.collection, {})

    def test_default_version_never_decreases(self) -> None:
        for version in (2, 5, 3):
            self.registry.change(write_source(self.root / f"calc.{version}" / "add.py", "def method(*, a, b):\n    return a + b"))
        self.assertEqual(self.registry.default_version("calc"), 5)
        self.registry.delete(self.root / "calc.5" / "add.py")
        self.assertEqual(self.registry.default_version("calc"), 5)
        self.assertEqual(self.registry.versions("calc"), [2, 3, 5])
        self.assertEqual(self.registry.interface("calc").versions[5], {})

    def test_recompile_replaces_procedure(self) -> None:
        path = write_source(self.root / "cfg.1" / "limits.py", "def method(*, key):\n    return key")
        self.registry.change(path)
        self.assertEqual(self.registry.signature("cfg", "limits"), ["key"])
        write_source(path, "max_items = 10\n")
        self.registry.change(path)
        self.assertEqual(dict(self.api["cfg"]["limits"]), {"max_items": 10})
        self.assertIsNone(self.registry.signature("cfg", "limits"))
        proc = self.registry.get_method("cfg", "limits")
        assert proc is not None
        self.assertIsNone(proc.method)

    def test_missing_file_leaves_registry_unchanged(self) -> None:
        self.registry.change(self.root / "users.1" / "absent.py")
        self.registry.change(self.root / "users.1.py")
        self.assertEqual(self.api, {})
        self.assertEqual(self.registry.collection, {})
        self.assertEqual(self.logger.events, [])

    def test_non_script_and_outside_files_are_ignored(self) -> None:
        write_source(self.root / "users.1" / "notes.txt", "hello")
        self.registry.change(self.root / "users.1" / "notes.txt")
        outside = write_source(Path(self._tmp.name) / "elsewhere.1.py", "x = 1")
        self.registry.change(outside)
        self.assertEqual(self.api, {})

    def test_broken_file_is_logged_and_skipped(self) -> None:
        good = write_source(self.root / "users.1" / "get.py", "def method(*, id):\n    return id")
        self.registry.change(good)
        write_source(good, "def method(*, id)\n    return id")
        self.registry.change(good)
        self.assertEqual(self.api["users"]["get"](id=7), 7)
        self.assertEqual(len(self.logger.named("interfaces.compile_failed")), 1)

    def test_malformed_interface_name_is_rejected(self) -> None:
        path = write_source(self.root / "users.beta" / "get.py", "def method():\n    return 1")
        self.registry.change(path)
        self.registry.delete(path)
        self.assertEqual(self.api, {})
        self.assertEqual(self.registry.collection, {})
        warnings = self.logger.named("interfaces.invalid_name")
        self.assertEqual(len(warnings), 2)
        self.assertEqual(warnings[0]["level"], "warning")

    def test_default_file_registers_every_export(self) -> None:
        path = write_source(
            self.root / "math.1.py",
            """
            import operator

            PRECISION = 4

            def add(*, a, b):
                return a + b

            def mul(*, a, b):
                return operator.mul(a, b)

            def _helper():
                return None
            """,
        )
        self.registry.change(path)
        self.assertEqual(sorted(self.api["math"]), ["PRECISION", "add", "mul"])
        self.assertEqual(self.api["math"]["PRECISION"], 4)
        self.assertEqual(self.api["math"]["mul"](a=3, b=4), 12)
        self.assertEqual(self.registry.signatures["math"], {"add": ["a", "b"], "mul": ["a", "b"]})
        self.registry.delete(path)
        self.assertIn("add", self.api["math"])

    def test_units_see_sandbox_context(self) -> None:
        path = write_source(self.root / "info.1" / "tag.py", "def method():\n    return context['version_tag']")
        self.registry.change(path)
        self.assertEqual(self.api["info"]["tag"](), "test")

    def test_load_scans_root(self) -> None:
        write_source(self.root / "users.1" / "create.py", CREATE_V1)
        write_source(self.root / "users.2" / "create.py", CREATE_V2)
        write_source(self.root / "stats.1.py", "def count():\n    return 0")
        write_source(self.root / "users.1" / "nested" / "deep.py", "def method():\n    return 0")
        self.registry.load()
        snapshot = self.registry.snapshot()
        self.assertEqual(snapshot["interfaces"]["users"], {"default": 2, "versions": {"1": ["create"], "2": ["create"]}})
        self.assertEqual(snapshot["interfaces"]["stats"], {"default": 1, "versions": {"1": ["count"]}})
        self.assertEqual(snapshot["signatures"]["users"]["create"], ["name", "email"])
        loaded = self.logger.named("interfaces.loaded")
        self.assertEqual(loaded[-1]["interfaces"], ["stats", "users"])

    def test_exiting_method_file_does_not_escape_change(self) -> None:
        path = write_source(self.root / "users.1" / "bad.py", "import sys\nsys.exit(3)")
        self.registry.change(path)
        self.registry.load()
        self.assertEqual(self.api, {})
        self.assertEqual(len(self.logger.named("interfaces.compile_failed")), 2)

    def test_rewrite_during_compile_keeps_latest_content(self) -> None:
        entered = threading.Event()
        release = threading.Event()

        class GatedCompiler(UnitCompiler):
            calls = 0

            def compile(self, file_name):
                unit = super().compile(file_name)
                GatedCompiler.calls += 1
                if GatedCompiler.calls == 1:
                    entered.set()
                    release.wait(5)
                return unit

        registry = InterfaceRegistry(
            self.root,
            self.registry.sandbox,
            compiler=GatedCompiler(self.registry.sandbox),
            logger=self.logger,
        )
        path = write_source(self.root / "users.1" / "get.py", "def method():\n    return 'old'")
        first = threading.Thread(target=registry.change, args=(path,))
        first.start()
        self.assertTrue(entered.wait(5))
        write_source(path, "def method():\n    return 'new'")
        second = threading.Thread(target=registry.change, args=(path,))
        second.start()
        second.join(0.2)
        self.assertTrue(second.is_alive())
        release.set()
        first.join(5)
        second.join(5)
        self.assertEqual(self.api["users"]["get"](), "new")
        self.assertEqual(GatedCompiler.calls, 2)

    def test_concurrent_changes_serialize_per_interface(self) -> None:
        paths = [
            write_source(self.root / f"jobs.{version}" / f"task{index}.py", f"def method(*, n):\n    return n + {index}")
            for version in (1, 2)
            for index in range(5)
        ]
        threads = [threading.Thread(target=self.registry.change, args=(path,)) for path in paths * 3]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(self.registry.default_version("jobs"), 2)
        self.assertEqual(sorted(self.api["jobs"]), [f"task{index}" for index in range(5)])
        self.assertEqual(self.api["jobs"]["task3"](n=1), 4)


if __name__ == "__main__":
    unittest.main()
