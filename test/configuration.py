"""
Configuration module behavioral tests (environment, profiles, layered resolution).

Scope
- Validate Environment snapshots (empty values read as absent).
- Validate ConfigurationSource sections, globals, key folding and profiles.
- Validate Layers precedence (environment > configuration > default).
- Validate merge() and stringify().

Conventions
- Test method names follow CamelCase per project convention.
- Specs are declared through declare() so they carry their keys and names.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from helmsman import (
    ConfigurationError,
    ConfigurationSource,
    Environment,
    FaultCode,
    Layers,
    Option,
    Source,
    Switch,
    declare,
    merge,
    stringify,
)


def _specs():
    def deploy(
            port=Option(type=int, default=8080, env="PORT"),
            max_retries=Option(type=int),
            verbose=Switch(),
    ): ...

    return declare(deploy)


CONFIGURATION = {
    "globalOptions": {"verbose": True},
    "commands": {
        "deploy": {"port": 9000, "maxRetries": 4},
        "deploy remote": {"host": "example.org"},
        "db": {"migrate": {"target": "head"}},
    },
    "profiles": {
        "staging": {"commands": {"deploy": {"port": 9100}}},
        "ci": {"inherits": "staging", "globalOptions": {"verbose": False}},
        "loop-a": {"inherits": "loop-b"},
        "loop-b": {"inherits": "loop-a"},
    },
}


class TestEnvironment(TestCase):
    """Behavioral tests for Environment snapshots."""

    def testLookup(self):
        environment = Environment({"PORT": "3000", "EMPTY": ""})
        self.assertEqual(environment.lookup("PORT"), "3000")
        self.assertIsNone(environment.lookup("EMPTY"))
        self.assertIsNone(environment.lookup("MISSING"))
        self.assertIsNone(environment.lookup(None))
        self.assertEqual(len(environment), 2)

    def testSnapshotIsDetached(self):
        environ = {"PORT": "3000"}
        environment = Environment(environ)
        environ["PORT"] = "4000"
        self.assertEqual(environment["PORT"], "3000")

    def testRejectsNonMappings(self):
        with self.assertRaises(TypeError):
            Environment(["PORT=3000"])


class TestConfigurationSource(TestCase):
    """Behavioral tests for sections, globals and profiles."""

    def testSectionsByPath(self):
        source = ConfigurationSource(CONFIGURATION)
        self.assertEqual(source.section(["deploy"])["port"], 9000)
        self.assertEqual(source.section(["deploy", "remote"]), {"host": "example.org"})
        self.assertEqual(source.section(["DB", "migrate"]), {"target": "head"})
        self.assertEqual(source.section(["unknown"]), {})
        self.assertEqual(source.section([]), {})

    def testLookupFoldsKeys(self):
        source = ConfigurationSource(CONFIGURATION)
        section = source.section(["deploy"])
        self.assertEqual(source.lookup(section, "max-retries"), "4")
        self.assertEqual(source.lookup(source.globals(), "verbose"), "true")
        self.assertIsNone(source.lookup(section, "missing"))

    def testMalformedValuesAreIgnored(self):
        source = ConfigurationSource({"commands": {"deploy": {"port": {"nested": 1}, "tags": {1, 2}}}})
        section = source.section(["deploy"])
        self.assertIsNone(source.lookup(section, "port"))
        with self.assertLogs("helmsman.configuration", "WARNING"):
            self.assertIsNone(source.lookup(section, "tags"))

    def testEmptyConfiguration(self):
        source = ConfigurationSource()
        self.assertEqual(source.globals(), {})
        self.assertEqual(source.section(["deploy"]), {})
        self.assertIsNone(source.profile)

    def testProfileInheritance(self):
        source = ConfigurationSource(CONFIGURATION, profile="ci")
        self.assertEqual(source.profile, "ci")
        self.assertEqual(source.section(["deploy"])["port"], 9100)
        self.assertEqual(source.section(["deploy"])["maxRetries"], 4)
        self.assertEqual(source.lookup(source.globals(), "verbose"), "false")

    def testProfileErrors(self):
        with self.assertRaises(ConfigurationError) as context:
            ConfigurationSource(CONFIGURATION, profile="production")
        self.assertEqual(context.exception.code, FaultCode.INVALID_PROFILE)

        with self.assertRaises(ConfigurationError) as context:
            ConfigurationSource(CONFIGURATION, profile="loop-a")
        self.assertIn("inherits from itself", str(context.exception))

    def testNonMappingsAreIgnored(self):
        with self.assertLogs("helmsman.configuration", "WARNING"):
            source = ConfigurationSource(["not", "a", "mapping"])
        self.assertEqual(source.section(["deploy"]), {})
        self.assertEqual(source.globals(), {})


class TestLayers(TestCase):
    """Behavioral tests for value resolution below the command line."""

    def setUp(self):
        self.specs = _specs()
        self.configuration = ConfigurationSource(CONFIGURATION)
        self.section = self.configuration.section(["deploy"])

    def testEnvironmentBeatsConfiguration(self):
        layers = Layers(Environment({"PORT": "3000"}), self.configuration, self.section)
        self.assertEqual(layers.resolve(self.specs["port"]), ("3000", Source.ENV))

    def testConfigurationBeatsDefault(self):
        layers = Layers(Environment({}), self.configuration, self.section)
        self.assertEqual(layers.resolve(self.specs["port"]), ("9000", Source.CONFIG))

    def testDefaultIsReturnedAsDeclared(self):
        layers = Layers(Environment({}), ConfigurationSource(), {})
        self.assertEqual(layers.resolve(self.specs["port"]), (8080, Source.DEFAULT))

    def testNothingSupplied(self):
        layers = Layers(Environment({}), ConfigurationSource(), {})
        value, source = layers.resolve(self.specs["max_retries"])
        self.assertIsNone(source)
        self.assertFalse(value)

    def testPrefixDerivesVariableNames(self):
        layers = Layers(Environment({"APP_MAX_RETRIES": "9"}), ConfigurationSource(), {}, prefix="app_")
        self.assertEqual(layers.variable(self.specs["max_retries"]), "APP_MAX_RETRIES")
        self.assertEqual(layers.variable(self.specs["port"]), "PORT")
        self.assertEqual(layers.resolve(self.specs["max_retries"]), ("9", Source.ENV))

    def testNoPrefixNoVariable(self):
        layers = Layers(Environment({"MAX_RETRIES": "9"}), ConfigurationSource(), {})
        self.assertIsNone(layers.variable(self.specs["max_retries"]))


class TestHelpers(TestCase):
    """Behavioral tests for merge() and stringify()."""

    def testMergeIsDeepAndCaseInsensitive(self):
        first = {"Commands": {"deploy": {"port": 1}}}
        second = {"commands": {"deploy": {"host": "a"}}, "extra": True}
        self.assertEqual(
            merge(first, second),
            {"Commands": {"deploy": {"port": 1, "host": "a"}}, "extra": True},
        )
        self.assertEqual(first, {"Commands": {"deploy": {"port": 1}}})

    def testMergeLaterWins(self):
        self.assertEqual(merge({"a": {"b": 1}}, {"a": 2}), {"a": 2})
        with self.assertRaises(TypeError):
            merge({"a": 1}, ["b"])

    def testStringify(self):
        self.assertEqual(stringify(True), "true")
        self.assertEqual(stringify(False), "false")
        self.assertEqual(stringify(3), "3")
        self.assertEqual(stringify(1.5), "1.5")
        self.assertEqual(stringify(["a", 1, False]), "a,1,false")
        with self.assertRaises(ValueError):
            stringify(None)


if __name__ == "__main__":
    unittest.main()
