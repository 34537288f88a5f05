"""
Commands module behavioral tests (declaration rules, sealing, resolution).

Scope
- Validate Action/Command declaration: derived names, aliases, primary
  actions and the shared subcommand/action namespace.
- Validate CommandTree sealing, parent index and hook/exit-code ordering.
- Validate path resolution and its friendly faults (unknown, missing,
  suggestions).

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (Command, Action, CommandTree, Argument, Option).
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from helmsman import (
    Action,
    Argument,
    Command,
    CommandTree,
    ConfigurationError,
    FaultCode,
    MissingCommandError,
    Option,
    UnknownActionError,
    UnknownCommandError,
    exit_code,
)


def _tree():
    """
    build (primary, no arguments) / status
    deploy, alias d (primary with an argument) / status
    db / migrate / up, down
    """
    build = Command("build")

    @build.action(primary=True)
    def run(release=Option(type=bool, default=False)):
        """Build the project."""

    @build.action
    def status(): ...

    deploy = Command("deploy", aliases=("d",))

    @deploy.action(primary=True)
    def ship(target=Argument()): ...

    deploy.action(status)

    db = Command("db")
    migrate = db.command("migrate")
    migrate.action(lambda: None, name="up")
    migrate.action(lambda: None, name="down")

    return CommandTree([build, deploy, db], prog="tool")


class TestDeclaration(TestCase):
    """Behavioral tests for Command and Action declaration."""

    def testActionDefaults(self):
        def deploy_all(verbose=Option()):
            """Deploy every service.

            Longer text is not part of the description.
            """

        action = Action(deploy_all)
        self.assertEqual(action.name, "deploy-all")
        self.assertEqual(action.descr, "Deploy every service.")
        self.assertFalse(action.primary)
        self.assertFalse(action.asynchronous)
        self.assertEqual(list(action.parameters), ["verbose"])
        self.assertEqual(action.labels, ("deploy-all",))

    def testAsynchronousAction(self):
        async def fetch(): ...

        self.assertTrue(Action(fetch).asynchronous)

    def testDecoratorReturnsCallback(self):
        command = Command("tool")

        @command.action
        def hello(): return 7

        self.assertEqual(hello(), 7)
        self.assertEqual([action.name for action in command.actions], ["hello"])

    def testNameValidation(self):
        with self.assertRaises(ValueError):
            Command("bad name")
        with self.assertRaises(ValueError):
            Command("bad_name")
        with self.assertRaises(TypeError):
            Command(3)
        with self.assertRaises(ValueError):
            Command("deploy", aliases=("DEPLOY",))

    def testSharedNamespace(self):
        db = Command("db")
        db.command("migrate")
        with self.assertRaises(ValueError):
            db.action(lambda: None, name="Migrate")

    def testSinglePrimary(self):
        command = Command("tool")
        command.action(lambda: None, name="first", primary=True)
        with self.assertRaises(ValueError):
            command.action(lambda: None, name="second", primary=True)
        self.assertEqual(command.primary.name, "first")

    def testSingleParent(self):
        child = Command("child")
        Command("one").attach(child)
        with self.assertRaises(ValueError):
            Command("two").attach(child)

    def testExitMappingsFromPairs(self):
        command = Command("tool", exits=[(KeyError, 4), exit_code(ValueError, 2)])
        self.assertEqual([mapping.code for mapping in command.exits], [4, 2])
        with self.assertRaises(TypeError):
            Command("tool", exits=[KeyError])


class TestTree(TestCase):
    """Behavioral tests for CommandTree construction."""

    def testSealing(self):
        command = Command("tool")
        action = Action(lambda: None, name="run")
        command.register(action)
        CommandTree([command])
        with self.assertRaises(TypeError):
            command.command("late")
        with self.assertRaises(TypeError):
            command.before(lambda context: None)
        with self.assertRaises(TypeError):
            action.after(lambda context, result: None)

    def testRootsMustBeUnique(self):
        with self.assertRaises(ValueError):
            CommandTree([Command("a", aliases=("x",)), Command("X")])
        with self.assertRaises(ValueError):
            CommandTree([])

    def testParentIndex(self):
        tree = _tree()
        db = tree.roots[2]
        migrate = db.children[0]
        self.assertIsNone(tree.parent(db))
        self.assertIs(tree.parent(migrate), db)
        self.assertEqual(tree.path(migrate), (db, migrate))
        with self.assertRaises(ValueError):
            tree.index(Command("stranger"))

    def testHookAndExitOrder(self):
        root = Command("root", exits=[(LookupError, 1)])
        leaf = root.command("leaf")

        def run(): ...

        leaf.action(run, primary=True, exits=[(KeyError, 3)])
        action = leaf.primary

        @root.before
        def outer(context): ...

        @leaf.before
        def inner(context): ...

        @action.before
        def own(context): ...

        tree = CommandTree([root])
        resolution = tree.resolve(["root", "leaf"])
        self.assertEqual([hook.callback for hook in tree.hooks(resolution)], [outer, inner, own])
        self.assertEqual(tree.exits(resolution)[0][0].code, 3)
        self.assertEqual(len(tree.exits(resolution)), 3)


class TestResolution(TestCase):
    """Behavioral tests for CommandTree.resolve()."""

    def setUp(self):
        self.tree = _tree()

    def testPrimaryAction(self):
        resolution = self.tree.resolve(["build", "--release"])
        self.assertEqual(resolution.names, ("build",))
        self.assertEqual(resolution.action.name, "run")
        self.assertEqual(resolution.consumed, 1)

    def testNamedAction(self):
        resolution = self.tree.resolve(["build", "status"])
        self.assertEqual(resolution.action.name, "status")
        self.assertEqual(resolution.consumed, 2)

    def testAliasesAndCase(self):
        self.assertEqual(self.tree.resolve(["d", "prod"]).command.name, "deploy")
        self.assertEqual(self.tree.resolve(["DEPLOY", "prod"]).command.name, "deploy")
        self.assertEqual(self.tree.resolve(["Build", "STATUS"]).action.name, "status")

    def testNestedPath(self):
        resolution = self.tree.resolve(["db", "migrate", "up"])
        self.assertEqual(resolution.names, ("db", "migrate"))
        self.assertEqual(resolution.action.name, "up")
        self.assertEqual(resolution.consumed, 3)

    def testPrimaryWithArgumentsTakesUnknownToken(self):
        resolution = self.tree.resolve(["deploy", "production"])
        self.assertEqual(resolution.action.name, "ship")
        self.assertEqual(resolution.consumed, 1)

    def testUnknownCommandSuggestion(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.tree.resolve(["buld"])
        fault = context.exception
        self.assertEqual(fault.suggestion, "build")
        self.assertEqual(fault.code, FaultCode.UNKNOWN_COMMAND)
        self.assertIn("did you mean 'build'?", fault.hint)
        self.assertIn("tool --help", fault.hint)

    def testUnknownCommandWithoutSuggestion(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.tree.resolve(["xyz"])
        self.assertIsNone(context.exception.suggestion)

    def testSuggestionAmongManyCommands(self):
        tree = CommandTree([Command("large-cmd-%d" % index) for index in range(100)], prog="tool")
        with self.assertRaises(UnknownCommandError) as context:
            tree.resolve(["large-cnd-50"])
        self.assertEqual(context.exception.suggestion, "large-cmd-50")
        self.assertIn("did you mean 'large-cmd-50'?", context.exception.hint)

    def testUnknownAction(self):
        with self.assertRaises(UnknownActionError) as context:
            self.tree.resolve(["build", "stauts"])
        self.assertEqual(context.exception.suggestion, "status")

    def testUnknownSubcommand(self):
        with self.assertRaises(UnknownCommandError) as context:
            self.tree.resolve(["db", "migrat"])
        self.assertEqual(context.exception.code, FaultCode.UNKNOWN_SUBCOMMAND)
        self.assertEqual(context.exception.suggestion, "migrate")

    def testMissingPieces(self):
        with self.assertRaises(MissingCommandError):
            self.tree.resolve([])
        with self.assertRaises(MissingCommandError):
            self.tree.resolve(["--verbose"])
        with self.assertRaises(MissingCommandError):
            self.tree.resolve(["db"])
        with self.assertRaises(MissingCommandError) as context:
            self.tree.resolve(["db", "--verbose"])
        self.assertEqual(context.exception.code, FaultCode.MISSING_COMMAND)

    def testActionsWithoutPrimaryIsADeclarationError(self):
        with self.assertRaises(ConfigurationError) as context:
            self.tree.resolve(["db", "migrate"])
        self.assertEqual(context.exception.code, FaultCode.INVALID_DECLARATION)
        self.assertIn("up, down", str(context.exception))
        with self.assertRaises(ConfigurationError):
            self.tree.resolve(["db", "migrate", "--force"])

    def testEmptyCommandIsADeclarationError(self):
        tree = CommandTree([Command("empty")])
        with self.assertRaises(ConfigurationError):
            tree.resolve(["empty"])

    def testLocate(self):
        path, action = self.tree.locate(["db", "migrate", "up", "--help"])
        self.assertEqual([command.name for command in path], ["db", "migrate"])
        self.assertEqual(action.name, "up")
        self.assertEqual(self.tree.locate(["nope"]), ((), None))


if __name__ == "__main__":
    unittest.main()
