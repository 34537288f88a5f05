"""
Token classification behavioral tests.

Scope
- Validate option/switch/positional recognition, inline values and "--".
- Validate name matching (long names ignore case, short names do not).
- Validate usage faults: unknown option (with suggestion), missing value,
  duplicate scalar option.
- Validate help/version requests, global fallbacks and prefix scanning.

Conventions
- Test method names follow CamelCase per project convention.
- Specs come from declare()/flatten(), as the dispatcher provides them.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from helmsman import (
    DuplicateOptionError,
    MissingValueError,
    Option,
    Switch,
    UnknownOptionError,
    declare,
    flatten,
)
from helmsman.tokens import classify, positional


def _leaves(callback):
    return list(flatten(declare(callback)))


def deploy(
        port=Option("-p", type=int),
        offset=Option(type=int),
        tags=Option("-t", type=list[str]),
        verbose=Switch("-v"),
): ...


def settings(
        profile=Option(),
        quiet=Switch("-q"),
): ...


class TestPositional(TestCase):
    """Behavioral tests for positional()."""

    def testPositionalForms(self):
        self.assertTrue(positional("file.txt"))
        self.assertTrue(positional("-"))
        self.assertTrue(positional("-5"))
        self.assertTrue(positional("-1.5"))
        self.assertFalse(positional("-x"))
        self.assertFalse(positional("--port"))


class TestClassify(TestCase):
    """Behavioral tests for classify()."""

    def setUp(self):
        self.specs = _leaves(deploy)
        self.globals = _leaves(settings)

    def testOptionsSwitchesAndPositionals(self):
        result = classify(["--port", "80", "-v", "file.txt"], self.specs)
        self.assertEqual(result.options, {"port": ["80"], "verbose": [True]})
        self.assertEqual(result.positionals, ["file.txt"])
        self.assertEqual(result.requests, set())

    def testInlineValues(self):
        result = classify(["--port=80", "-t=a,b", "--verbose=false"], self.specs)
        self.assertEqual(result.options, {"port": ["80"], "tags": ["a,b"], "verbose": ["false"]})

    def testLongNamesIgnoreCase(self):
        self.assertEqual(classify(["--PORT", "80"], self.specs).options, {"port": ["80"]})
        with self.assertRaises(UnknownOptionError):
            classify(["-P", "80"], self.specs)

    def testNegativeNumbersAreValues(self):
        result = classify(["--offset", "-5", "-1.5"], self.specs)
        self.assertEqual(result.options, {"offset": ["-5"]})
        self.assertEqual(result.positionals, ["-1.5"])

    def testDoubleDashEndsOptions(self):
        result = classify(["-v", "--", "--port", "-v"], self.specs)
        self.assertEqual(result.options, {"verbose": [True]})
        self.assertEqual(result.positionals, ["--port", "-v"])

    def testMissingValue(self):
        with self.assertRaises(MissingValueError):
            classify(["--port"], self.specs)
        with self.assertRaises(MissingValueError):
            classify(["--port", "--verbose"], self.specs)

    def testDuplicateScalarOption(self):
        with self.assertRaises(DuplicateOptionError):
            classify(["--port", "1", "-p", "2"], self.specs)

    def testCollectionOptionsAccumulate(self):
        result = classify(["--tags", "a", "-t", "b,c"], self.specs)
        self.assertEqual(result.options, {"tags": ["a", "b,c"]})

    def testUnknownOptionSuggestion(self):
        with self.assertRaises(UnknownOptionError) as context:
            classify(["file.txt", "--prot", "80"], self.specs, offset=2)
        fault = context.exception
        self.assertEqual(fault.suggestion, "--port")
        self.assertIn("did you mean '--port'?", fault.hint)
        self.assertIn("fourth position", str(fault))

    def testUnknownOptionWithoutSuggestion(self):
        with self.assertRaises(UnknownOptionError) as context:
            classify(["--zzzzzzzz"], self.specs)
        self.assertIsNone(context.exception.suggestion)

    def testRequests(self):
        self.assertEqual(classify(["--help"], self.specs).requests, {"help"})
        self.assertEqual(classify(["-h", "--version"], self.specs).requests, {"help", "version"})
        self.assertEqual(classify(["--", "--help"], self.specs).positionals, ["--help"])
        with self.assertRaises(UnknownOptionError):
            classify(["--help"], self.specs, reserved=False)

    def testDeclaredNamesShadowRequests(self):
        def claims(host=Option("-h")): ...

        result = classify(["-h", "example.org"], _leaves(claims))
        self.assertEqual(result.options, {"host": ["example.org"]})
        self.assertEqual(result.requests, set())

    def testFallbackGoesToGlobals(self):
        result = classify(["-q", "--port", "1", "--profile", "ci"], self.specs, fallback=self.globals)
        self.assertEqual(result.options, {"port": ["1"]})
        self.assertEqual(result.globals, {"quiet": [True], "profile": ["ci"]})

    def testStopAtFirstPositional(self):
        result, index = classify(["-q", "--profile", "ci", "deploy", "--port", "1"], self.globals, stop=True)
        self.assertEqual(index, 3)
        self.assertEqual(result.options, {"quiet": [True], "profile": ["ci"]})
        self.assertEqual(result.positionals, [])


if __name__ == "__main__":
    unittest.main()
