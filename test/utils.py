"""
Tests for the Unset sentinel and the small helpers of helmsman.utils.

This module verifies:
- Singleton identity of Unset (construction, copy, deepcopy, pickle, threads).
- Falsy semantics and representation.
- Union support in isinstance checks (str | Unset).
- coalesce/mirror/rename/ordinal behavior.
"""
import copy
import pickle
import unittest
from threading import Thread, Lock
from unittest import TestCase

from helmsman.utils import *


class TestUnset(TestCase):
    """
    Test suite for the Unset sentinel.
    """

    def testSingleton(self) -> None:
        self.assertIs(Unset, UnsetType())
        self.assertIs(UnsetType(), UnsetType())

    def testFalsely(self) -> None:
        self.assertFalse(bool(Unset))

    def testNotEqualToNoneOrFalse(self) -> None:
        # Falsy does not imply equality with other falsy values.
        self.assertNotEqual(Unset, None)
        self.assertNotEqual(Unset, False)  # noqa: E712

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")
        self.assertEqual(str(Unset), "Unset")

    def testUnionInIsInstance(self) -> None:
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertTrue(isinstance("text", str | Unset))
        self.assertFalse(isinstance(3, str | Unset))

    def testCopyDeepcopyPreserveSingleton(self) -> None:
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testPickleRoundTrip(self) -> None:
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testThreadSafetySingleton(self) -> None:
        results: list[UnsetType] = []
        lock: Lock = Lock()

        def worker():
            instance = UnsetType()
            with lock:
                results.append(instance)

        threads = [Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertTrue(all(result is Unset for result in results))

    def testFinalType(self) -> None:
        with self.assertRaises(TypeError):
            class Derived(UnsetType):  # NOQA: F-841
                pass


class TestHelpers(TestCase):
    """
    Behavioral tests for coalesce, rename, mirror and ordinal.
    """

    def testCoalesceReplacesOnlyUnset(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)

    def testRenameForms(self):
        def original():
            pass

        self.assertIs(rename(original, "renamed"), original)
        self.assertEqual(original.__name__, "renamed")

        @rename("decorated")
        def other():
            pass

        self.assertEqual(other.__name__, "decorated")

    def testMirrorReturnsCopies(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = ["a", "b"]

        holder = Holder()
        holder.items.append("c")
        self.assertEqual(holder.items, ["a", "b"])
        with self.assertRaises(AttributeError):
            holder.items = []

    def testOrdinal(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(113), "113th")
        with self.assertRaises(ValueError):
            ordinal(0)
        with self.assertRaises(TypeError):
            ordinal(True)


if __name__ == "__main__":
    unittest.main()
