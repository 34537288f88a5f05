"""
Testing helpers behavioral tests (ArgumentBuilder, parse, run).

Scope
- Validate argument vectors produced by ArgumentBuilder and their shell form.
- Validate parse() quoting rules.
- Validate run() capture of exit codes, output and escaping exceptions.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from helmsman import Command, Dispatcher, Option
from helmsman.testing import ArgumentBuilder, CommandResult, parse, run


class TestArgumentBuilder(TestCase):
    """Behavioral tests for ArgumentBuilder."""

    def testBuild(self):
        builder = (
            ArgumentBuilder("deploy")
            .action("remote")
            .argument("prod")
            .option("port", 1234)
            .short("t", ["a", "b"])
            .switch("verbose")
            .switch("q")
            .option("--dry-run", False)
        )
        self.assertEqual(builder.build(), [
            "deploy", "remote", "prod",
            "--port", "1234",
            "-t", "a,b",
            "--verbose",
            "-q",
            "--dry-run", "false",
        ])
        self.assertEqual(list(builder), builder.build())

    def testConditionals(self):
        builder = ArgumentBuilder().option_if(False, "port", 1).switch_if(True, "force").option_if(True, "tag", "x")
        self.assertEqual(builder.build(), ["--force", "--tag", "x"])

    def testShortNamesAreSingleCharacters(self):
        with self.assertRaises(ValueError):
            ArgumentBuilder().short("port", 1)

    def testShellFormRoundTrips(self):
        builder = ArgumentBuilder("greet").argument("hello world").option("name", "O'Brien").raw("--", "-x")
        self.assertEqual(parse(str(builder)), builder.build())

    def testRequests(self):
        self.assertEqual(ArgumentBuilder().help().version().build(), ["--help", "--version"])


class TestParse(TestCase):
    """Behavioral tests for parse()."""

    def testQuoting(self):
        self.assertEqual(parse('deploy "my app" --tag=\'a b\''), ["deploy", "my app", "--tag=a b"])
        self.assertEqual(parse(""), [])
        with self.assertRaises(TypeError):
            parse(["deploy"])


class TestRun(TestCase):
    """Behavioral tests for run()."""

    def setUp(self):
        greet = Command("greet")

        @greet.action(primary=True)
        def hello(name=Option(default="world")):
            print("hello, %s" % name)

        self.greet = greet

    def testCapturesOutput(self):
        result = run(Dispatcher(self.greet, name="tool", environ={}), "greet --name alice")
        self.assertIsInstance(result, CommandResult)
        self.assertTrue(result.success)
        self.assertFalse(result.failure)
        self.assertEqual(result.output.strip(), "hello, alice")
        self.assertGreaterEqual(result.elapsed, 0.0)

    def testCapturesEscapingExceptions(self):
        app = Dispatcher(self.greet, name="tool", environ={}, shell=False)
        result = run(app, ArgumentBuilder("greet").option("nmae", "bob"))
        self.assertEqual(result.exit_code, 1)
        self.assertTrue(result.failure)
        self.assertEqual(type(result.exception).__name__, "UnknownOptionError")


if __name__ == "__main__":
    unittest.main()
