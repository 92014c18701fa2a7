"""
Tests for the internal helpers (Unset, coalesce, rename, freeze, methodize).
"""

from __future__ import annotations

import unittest
from types import MappingProxyType
from unittest import TestCase

from relay.utils import Unset, UnsetType, coalesce, rename, freeze, methodize


class TestUnset(TestCase):

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)

    def testFalsey(self):
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testNotSubclassable(self):
        with self.assertRaises(TypeError):
            class Other(UnsetType):  # NOQA
                pass

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)


class TestHelpers(TestCase):

    def testRename(self):
        @rename("friendly")
        def generated():
            pass

        self.assertEqual(generated.__name__, "friendly")
        self.assertEqual(generated.__qualname__, "friendly")
        with self.assertRaises(TypeError):
            rename(42, "x")
        with self.assertRaises(TypeError):
            rename()

    def testFreeze(self):
        self.assertEqual(freeze([1, 2]), (1, 2))
        self.assertEqual(freeze({1, 2}), frozenset({1, 2}))
        self.assertEqual(freeze("ab"), "ab")
        source = {"a": "1"}
        frozen = freeze(source)
        self.assertIsInstance(frozen, MappingProxyType)
        source["a"] = "2"
        self.assertEqual(frozen["a"], "1")

    def testMethodize(self):
        self.assertEqual(methodize("Dry-Run"), "dry_run")
        self.assertEqual(methodize("no-colors"), "no_colors")
        self.assertEqual(methodize("deploy"), "deploy")
        with self.assertRaises(TypeError):
            methodize(1)

    def testMethodizeCacheIsBounded(self):
        for index in range(1000):
            methodize(f"word-{index}")
        info = methodize.cache_info()
        self.assertIsNotNone(info.maxsize)
        self.assertLessEqual(info.currsize, info.maxsize)


if __name__ == "__main__":
    unittest.main()
