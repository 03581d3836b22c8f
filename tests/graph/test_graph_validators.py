import unittest

from gdrivemirror.errors import InvalidArgumentError
from gdrivemirror.graph import (
    EntryGraph,
    validate_exists,
    validate_is_folder,
    validate_move_no_cycle,
    validate_name,
    validate_not_root,
    would_create_cycle,
)
from gdrivemirror.models import File, Folder


class TestValidators(unittest.TestCase):
    def _make_graph(self) -> EntryGraph:
        graph = EntryGraph()
        graph.set_root(Folder(id="root", name="My Drive"))
        graph.add(Folder(id="A", name="A"))
        graph.add(Folder(id="B", name="B"))
        graph.add(File(id="F", name="f"))
        graph.attach("A", "root")
        graph.attach("B", "A")
        graph.attach("F", "B")
        return graph

    def test_validate_exists_and_folder(self) -> None:
        graph = self._make_graph()
        validate_exists(graph, "A", "Entry")
        with self.assertRaises(InvalidArgumentError):
            validate_exists(graph, "NOPE", "Entry")
        with self.assertRaises(InvalidArgumentError):
            validate_is_folder(graph, "F", "Parent")

    def test_root_protection(self) -> None:
        graph = self._make_graph()
        with self.assertRaises(InvalidArgumentError) as ctx:
            validate_not_root(graph, "root", "delete")
        self.assertEqual(ctx.exception.details["operation"], "delete")

    def test_validate_name(self) -> None:
        validate_name("report.pdf")
        for bad in ("", "   ", "a/b"):
            with self.assertRaises(InvalidArgumentError):
                validate_name(bad)

    def test_cycle_detection(self) -> None:
        graph = self._make_graph()
        self.assertTrue(would_create_cycle(graph, "A", "B"))
        self.assertTrue(would_create_cycle(graph, "A", "A"))
        self.assertFalse(would_create_cycle(graph, "B", "root"))
        with self.assertRaises(InvalidArgumentError):
            validate_move_no_cycle(graph, "A", "B")


if __name__ == "__main__":
    unittest.main()
