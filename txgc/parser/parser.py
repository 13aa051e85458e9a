"""
Text-game parser - recursive-descent statement dispatcher.

Reads source statement by statement and writes every record into a Program
document. Statements are selected by their leading keyword:

    nodes / vars / properties / actions / map / boring   record sections
    item <id> "label"                                    item block
    mod <id>                                             directive block
    start / node / property / path / action              standalone records
    first / pick / check / use / lay                     item behaviors
    location / resource(s)                               item placement
    @name / var name                                     variable definition

Sections and blocks run until a blank line or end of input. The first
grammar violation raises ParseError and the whole parse is abandoned.
"""

import sys
from typing import Callable, Dict, List, NoReturn, Optional

from ..errors import SourceRef
from ..lexer import grammar
from ..lexer.scanner import Scanner
from ..lexer.tokens import TokenList
from .document import (
    Action, AddItem, AddPath, AddResource, Behavior, CallMod, Command, DelItem, DelPath,
    DelResource, Directive, Edge, Item, ItemLocation, LocationKind, Message, Node, Program,
    Property, Return, SetItem, SetNode, SetVariable, Skip, Start, Teleport, VarDefinition,
    VarOperation,
)
from .expressions import ExpressionCompiler
from .tokenizer import LineTokenizer


ASSIGNMENTS = (
    (grammar.VAR_ASSIGNMENT, VarOperation.SET),
    (grammar.VAR_INCREMENT, VarOperation.INCREMENT),
    (grammar.VAR_DECREMENT, VarOperation.DECREMENT),
    (grammar.VAR_MULTIPLY, VarOperation.MULTIPLY),
    (grammar.VAR_DIVIDE, VarOperation.DIVIDE),
)


class Parser:
    """Parses text-game source into a Program document."""

    def __init__(self, source: str, filename: str = "<input>", verbose: bool = False,
                 functions: Optional[Dict[str, Optional[int]]] = None, max_depth: int = 64):
        self.source = source
        self.filename = filename
        self.verbose = verbose
        self.scanner = Scanner(source, filename)
        self.expressions = ExpressionCompiler(self.scanner, functions, max_depth, log=self.log)
        self.tokenizer = LineTokenizer(self.scanner, self.expressions)
        self.program = Program()
        self.warnings: List[str] = []

        # Modifier commands by keyword
        self.commands: Dict[str, Callable[[TokenList, SourceRef], Command]] = {
            'message': self.command_message,
            'additem': self.command_add_item,
            'delitem': self.command_del_item,
            'setitem': self.command_set_item,
            'addresource': self.command_add_resource,
            'delresource': self.command_del_resource,
            'setnode': self.command_set_node,
            'addpath': self.command_add_path,
            'delpath': self.command_del_path,
            'teleport': self.command_teleport,
            'callmod': self.command_call_mod,
            'skip': self.command_skip,
            'return': self.command_return,
        }

    def log(self, message: str):
        """Print log message if verbose mode is enabled."""
        if self.verbose:
            print(f"[txgc] {message}", file=sys.stderr)

    def warn(self, code: str, message: str):
        """Record a non-fatal warning with a code."""
        warning = f"{code}: {message}"
        self.warnings.append(warning)
        if self.verbose:
            print(f"[txgc] Warning: {warning}", file=sys.stderr)

    def get_warnings(self) -> List[str]:
        """Get all warnings generated during the last parse."""
        return self.warnings.copy()

    def error(self, message: str, ref: Optional[SourceRef] = None) -> NoReturn:
        """Raise a ParseError at ref, or at the cursor."""
        self.scanner.error(message, ref)

    def accept(self, pattern) -> bool:
        """Consume pattern at the cursor without buffering it."""
        return self.scanner.attempt(pattern, to_buffer=False)

    def begin(self, record: str) -> SourceRef:
        """Trace a handler entry and capture the record's source ref."""
        ref = self.scanner.ref()
        self.log(f"{record} at {ref.offset}")
        return ref

    def read_tokens(self) -> TokenList:
        return self.tokenizer.read()

    def check_trailing(self, tokens: TokenList, record: str):
        """Warn about tokens a record grammar left unconsumed."""
        if not tokens.empty():
            values = ", ".join(repr(token.value) for token in tokens)
            self.warn("TXG0103", f"{record}: ignoring trailing tokens {values}")

    def parse(self) -> Program:
        """Parse the whole source.

        Returns:
            The populated Program document

        Raises:
            ParseError: On the first grammar violation
        """
        self.scanner.reset()
        self.program = Program()
        self.warnings = []

        while self.parse_statement():
            pass

        self.log(f"parsed {self.program!r}")
        return self.program

    def parse_statement(self) -> bool:
        """Dispatch one top-level statement. Returns False at end of input."""
        s = self.scanner

        # Comments
        if self.accept(grammar.ML_COMMENT_OPEN):
            self.skip_block_comment()
            return True
        if self.accept(grammar.COMMENT):
            s.skip_comment()
            return True

        # Sections
        if self.accept(grammar.SECTION_NODES):
            return self.parse_section('nodes', self.parse_node)
        if self.accept(grammar.SECTION_VARS):
            return self.parse_section('vars', self.parse_var_definition)
        if self.accept(grammar.SECTION_PROPERTIES):
            return self.parse_section('properties', self.parse_property)
        if self.accept(grammar.SECTION_ACTIONS):
            return self.parse_section('actions', self.parse_action)
        if self.accept(grammar.SECTION_MAP):
            return self.parse_section('map', self.parse_path)
        if self.accept(grammar.SECTION_ITEM):
            return self.parse_item()
        if self.accept(grammar.SECTION_BORING):
            return self.parse_section('boring', self.parse_boring_default)
        if self.accept(grammar.SECTION_MOD):
            return self.parse_mod()

        # Standalone records
        if self.accept(grammar.START):
            return self.parse_start()
        if self.accept(grammar.NODE):
            return self.parse_node()
        if self.accept(grammar.PROPERTY):
            return self.parse_property()
        if self.accept(grammar.PATH):
            return self.parse_path()
        if self.accept(grammar.ACTION):
            return self.parse_action()

        # Item records outside an item block
        if self.accept(grammar.FIRST):
            return self.parse_first()
        for category, pattern in grammar.BEHAVIORS:
            if self.accept(pattern):
                return self.parse_behavior(category)
        if self.accept(grammar.LOCATION):
            return self.parse_location()
        if self.accept(grammar.RESOURCES):
            return self.parse_resources()

        # Variables
        if s.peek(grammar.VAR_NAME):
            self.parse_var_definition()
            return True
        if self.accept(grammar.VAR):
            self.parse_var_definition()
            return True

        if self.accept(grammar.BLANK) or self.accept(grammar.LINE_END):
            return True

        if s.is_at_end():
            return False

        self.error("Unexpected token")

    def skip_block_comment(self):
        """Skip a block comment, and its closing line when nothing follows on it."""
        self.scanner.skip_block_comment()
        self.accept(grammar.BLANK_LINE)

    def parse_section(self, name: str, handler: Callable[[], object]) -> bool:
        """Parse `name` records, one per line, until a blank line or end of input."""
        s = self.scanner
        self.begin(f"section {name}")

        self.accept(grammar.BLANK)
        if self.accept(grammar.COMMENT):
            s.skip_comment()
        elif not (self.accept(grammar.LINE_END) or s.is_at_end()):
            self.error(f"Expecting {name} definition")

        while True:
            if s.is_at_end() or self.accept(grammar.BLANK_LINE):
                return True

            if self.accept(grammar.ML_COMMENT_LINE):
                self.skip_block_comment()
                continue

            if self.accept(grammar.COMMENT_LINE):
                s.skip_comment()
                continue

            handler()

    def parse_block(self, statement: Callable[[], object]):
        """Run statement for each line of an item or mod block."""
        s = self.scanner

        while True:
            if self.accept(grammar.BLANK):
                continue

            if s.is_at_end() or self.accept(grammar.LINE_END):
                return

            if self.accept(grammar.ML_COMMENT_OPEN):
                self.skip_block_comment()
                continue

            if self.accept(grammar.COMMENT):
                s.skip_comment()
                continue

            statement()

    # Blocks

    def parse_item(self) -> bool:
        """item <id> "label" ["appendix"] followed by item-scoped records."""
        ref = self.begin("item")
        tokens = self.read_tokens()

        args = tokens.eat("%i %s")
        if args is None:
            self.error("Expecting item name and label", ref)

        item_id, label = args
        appendix = tokens.eat_one("%s")

        item = self.program.item(item_id)
        if item.label is not None:
            self.warn("TXG0101", f"item '{item_id}' redefined, label '{item.label}' replaced")
        item.label = label
        item.appendix = appendix
        self.check_trailing(tokens, "item")

        self.parse_block(lambda: self.parse_item_statement(item_id))
        return True

    def parse_item_statement(self, item_id: str):
        """Dispatch one record nested in an item block."""
        if self.accept(grammar.FIRST):
            self.parse_first(item_id)
            return

        for category, pattern in grammar.BEHAVIORS:
            if self.accept(pattern):
                self.parse_behavior(category, item_id)
                return

        if self.accept(grammar.LOCATION):
            self.parse_location(item_id)
        elif self.accept(grammar.RESOURCES):
            self.parse_resources(item_id)
        elif self.accept(grammar.BORING):
            self.parse_boring(item_id)
        else:
            self.error("Unexpected token")

    def parse_mod(self) -> bool:
        """mod <id> followed by one directive per line."""
        ref = self.begin("mod")
        tokens = self.read_tokens()

        name = tokens.eat_one("%i")
        if name is None:
            self.error("Expecting mod name", ref)
        self.check_trailing(tokens, "mod")

        directives = self.program.modifiers.setdefault(name, [])
        self.parse_block(lambda: directives.append(self.parse_directive()))
        return True

    # Records

    def parse_start(self) -> bool:
        if self.program.start is not None:
            self.error("Start already defined")

        ref = self.begin("start")
        tokens = self.read_tokens()

        args = tokens.eat("%s %i")
        if args is None:
            self.error("Expecting start text and start node", ref)

        self.program.start = Start(args[0], args[1], ref)
        self.check_trailing(tokens, "start")
        return True

    def parse_node(self) -> bool:
        """[final] <id> "description" """
        ref = self.begin("node")
        tokens = self.read_tokens()

        is_final = tokens.eat_one("final") is not None
        args = tokens.eat("%i %s")
        if args is None:
            self.error("Expecting node name and description", ref)

        node_id, message = args
        if node_id in self.program.nodes:
            self.warn("TXG0102", f"node '{node_id}' redefined")

        self.program.nodes[node_id] = Node(message, is_final, ref)
        self.check_trailing(tokens, "node")
        return True

    def parse_property(self) -> bool:
        """(@name | name) "label" [A to B]"""
        ref = self.begin("property")
        tokens = self.read_tokens()

        name = tokens.eat_one("%v")
        if name is None:
            name = tokens.eat_one("%i")
        if name is None:
            self.error("Expecting variable name", ref)

        label = tokens.eat_one("%s")
        if label is None:
            self.error("Expecting variable label", ref)

        display_range = tokens.eat_one("%r")

        if name in self.program.properties:
            self.warn("TXG0102", f"property '{name}' redefined")

        self.program.properties[name] = Property(label, display_range, ref)
        self.check_trailing(tokens, "property")
        return True

    def parse_path(self) -> bool:
        """<from> "label" <to> [mod ...]"""
        ref = self.begin("path")
        tokens = self.read_tokens()

        args = tokens.eat("%i %s %i")
        if args is None:
            self.error("Expecting from node, label and to node", ref)

        source, label, target = args
        mods = tokens.eat_all("%i")

        targets = self.program.edges.setdefault(source, {})
        if target in targets:
            self.warn("TXG0102", f"path '{source}' -> '{target}' redefined")

        targets[target] = Edge(label, mods, ref)
        self.check_trailing(tokens, "path")
        return True

    def parse_action(self) -> bool:
        """((condition) | node) "label" ["message"] [mod ...]

        Condition-selected actions need a message or at least one modifier;
        node-selected actions do not.
        """
        ref = self.begin("action")
        tokens = self.read_tokens()

        cond = tokens.eat_one("%e")
        node = None
        if cond is None:
            node = tokens.eat_one("%i")
            if node is None:
                self.error("Expecting condition or node name", ref)

        label = tokens.eat_one("%s")
        if label is None:
            self.error("Expecting action label", ref)

        message = tokens.eat_one("%s")
        mods = tokens.eat_all("%i")

        if cond is not None and message is None and not mods:
            self.error("Message or modifier must be specified", ref)

        self.program.actions.append(Action(label, cond, node, message, mods, ref))
        self.check_trailing(tokens, "action")
        return True

    def parse_first(self, item_id: Optional[str] = None) -> bool:
        """first [N] (pick|check|use|lay) caps how often the behavior fires."""
        s = self.scanner
        self.begin("first")

        self.accept(grammar.BLANK)
        count = 1
        s.clear_buffer()
        if s.attempt(grammar.INTEGER):
            count = int(s.flush_buffer())
        self.accept(grammar.BLANK)

        for category, pattern in grammar.BEHAVIORS:
            if self.accept(pattern):
                return self.parse_behavior(category, item_id, count)

        self.error("Expecting [pick|check|use|lay]")

    def parse_behavior(self, category: str, item_id: Optional[str] = None,
                       count: Optional[int] = None) -> bool:
        """[no] [item] [on target] [(condition)] ["message"] [mod ...]

        The item id is read only when no enclosing item block bound one. The
        `on target` clause exists for use only.
        """
        ref = self.begin(category)
        tokens = self.read_tokens()

        negated = tokens.eat_one("no") is not None

        if item_id is None:
            item_id = tokens.eat_one("%i")
            if item_id is None:
                self.error("Expecting item name", ref)

        target = None
        if category == 'use' and tokens.eat_one("on") is not None:
            target = tokens.eat_one("%i")
            if target is None:
                self.error("Expecting target identifier", ref)

        cond = tokens.eat_one("%e")
        message = tokens.eat_one("%s")
        mods = tokens.eat_all("%i")

        behavior = Behavior(cond, message, mods, count, negated, target, ref)
        self.program.item(item_id).behaviors(category).append(behavior)
        self.check_trailing(tokens, category)
        return True

    def parse_resources(self, item_id: Optional[str] = None) -> bool:
        ref = self.begin("resources")
        tokens = self.read_tokens()

        if item_id is None:
            item_id = tokens.eat_one("%i")
            if item_id is None:
                self.error("Expecting item name", ref)

        item = self.program.item(item_id)
        for node in tokens.eat_all("%i"):
            item.add_resource(node)

        self.check_trailing(tokens, "resources")
        return True

    def parse_location(self, item_id: Optional[str] = None) -> bool:
        """no | player | <node>"""
        ref = self.begin("location")
        tokens = self.read_tokens()

        if item_id is None:
            item_id = tokens.eat_one("%i")
            if item_id is None:
                self.error("Expecting item name", ref)

        node = None
        if tokens.eat_one("no") is not None:
            kind = LocationKind.NONE
        elif tokens.eat_one("player") is not None:
            kind = LocationKind.PLAYER
        else:
            kind = LocationKind.NODE
            node = tokens.eat_one("%i")
            if node is None:
                self.error("Expecting [no|player|nodeName]", ref)

        self.program.item(item_id).location = ItemLocation(kind, node, ref)
        self.check_trailing(tokens, "location")
        return True

    def parse_boring(self, item_id: str) -> bool:
        """Item-nested: pick [no] | check | use [no] | lay [no], repeated."""
        ref = self.begin("boring")
        tokens = self.read_tokens()
        item = self.program.item(item_id)

        while not tokens.empty():
            for category in Item.CATEGORIES:
                if tokens.eat_one(category) is not None:
                    negated = category != 'check' and tokens.eat_one("no") is not None
                    behavior = Behavior(mods=[Behavior.BORING], negated=negated, ref=ref)
                    item.behaviors(category).append(behavior)
                    break
            else:
                self.error(f"Unexpected action {tokens.shift().value}", ref)

        return True

    def parse_boring_default(self) -> bool:
        """(pick [no] | check | use | lay [no]) "message" """
        ref = self.begin("boring-default")
        tokens = self.read_tokens()

        if tokens.eat_one("pick") is not None:
            key = "pickNo" if tokens.eat_one("no") is not None else "pick"
        elif tokens.eat_one("check") is not None:
            key = "check"
        elif tokens.eat_one("use") is not None:
            key = "use"
        elif tokens.eat_one("lay") is not None:
            key = "layNo" if tokens.eat_one("no") is not None else "lay"
        else:
            self.error("Undefined action", ref)

        message = tokens.eat_one("%s")
        if message is None:
            self.error("Expecting message", ref)

        self.program.boring_defaults[key] = message
        self.check_trailing(tokens, "boring")
        return True

    def parse_var_definition(self, store: bool = True) -> VarDefinition:
        """[@]name [(:= | += | -= | *= | /=) expression]

        Without an operator the variable is declared with no change applied.
        Definitions inside mod blocks are returned but not stored.
        """
        s = self.scanner
        ref = self.begin("var-definition")

        self.accept(grammar.BLANK)
        self.accept(grammar.VAR_SIGIL)
        s.clear_buffer()
        if not s.attempt(grammar.IDENTIFIER):
            self.error("Expecting variable name")
        name = s.flush_buffer()

        self.accept(grammar.BLANK)

        operation = VarOperation.DECLARE
        expression = None
        for pattern, assignment in ASSIGNMENTS:
            if self.accept(pattern):
                operation = assignment
                expression = self.expressions.compile(
                    grammar.EXP_LINE_TERMINATOR, consume=False, allow_end=True
                )
                break

        definition = VarDefinition(name, operation, expression, ref)
        if store:
            self.program.variables[name] = definition

        self.accept(grammar.BLANK)
        if s.is_at_end():
            return definition
        if self.accept(grammar.COMMENT):
            s.skip_comment()
            return definition
        if not self.accept(grammar.LINE_END):
            self.error("Expecting line end or variable assignment")

        return definition

    # Modifier directives

    def parse_directive(self) -> Directive:
        """[(condition)] (variable definition | command args...)"""
        s = self.scanner
        ref = self.begin("directive")

        cond = None
        if self.accept(grammar.EXP_OPEN):
            cond = self.expressions.compile(grammar.EXP_CLOSE)
            self.accept(grammar.BLANK)

        if s.peek(grammar.VAR_NAME) or self.accept(grammar.VAR):
            definition = self.parse_var_definition(store=False)
            return Directive(SetVariable(definition), cond, ref)

        tokens = self.read_tokens()
        keyword = tokens.eat_one("%i")
        handler = self.commands.get(keyword)
        if handler is None:
            self.error("Undefined command", ref)

        command = handler(tokens, ref)
        self.check_trailing(tokens, keyword)
        return Directive(command, cond, ref)

    def command_message(self, tokens: TokenList, ref: SourceRef) -> Command:
        text = tokens.eat_one("%s")
        if text is None:
            self.error("Expecting message", ref)
        return Message(text)

    def command_add_item(self, tokens: TokenList, ref: SourceRef) -> Command:
        """additem <item>, or additem <node> <item> to place it at a node."""
        first = tokens.eat_one("%i")
        second = tokens.eat_one("%i")
        if first is None:
            self.error("Expecting node or item name", ref)

        if second is None:
            return AddItem(first)
        return AddItem(second, first)

    def command_del_item(self, tokens: TokenList, ref: SourceRef) -> Command:
        item = tokens.eat_one("%i")
        if item is None:
            self.error("Expecting item name", ref)
        return DelItem(item)

    def command_set_item(self, tokens: TokenList, ref: SourceRef) -> Command:
        item = tokens.eat_one("%i")
        if item is None:
            self.error("Expecting item name", ref)

        label = tokens.eat_one("%s")
        if label is None:
            self.error("Expecting item label", ref)

        return SetItem(item, label, tokens.eat_one("%s"))

    def command_add_resource(self, tokens: TokenList, ref: SourceRef) -> Command:
        args = tokens.eat("%i %i")
        if args is None:
            self.error("Expecting item and node name", ref)
        return AddResource(*args)

    def command_del_resource(self, tokens: TokenList, ref: SourceRef) -> Command:
        args = tokens.eat("%i %i")
        if args is None:
            self.error("Expecting item and node name", ref)
        return DelResource(*args)

    def command_set_node(self, tokens: TokenList, ref: SourceRef) -> Command:
        args = tokens.eat("%i %s")
        if args is None:
            self.error("Expecting node name and description", ref)
        return SetNode(*args)

    def command_add_path(self, tokens: TokenList, ref: SourceRef) -> Command:
        args = tokens.eat("%i %s %i")
        if args is None:
            self.error("Expecting from node, description and to node", ref)
        return AddPath(*args)

    def command_del_path(self, tokens: TokenList, ref: SourceRef) -> Command:
        args = tokens.eat("%i %i")
        if args is None:
            self.error("Expecting from node and to node", ref)
        return DelPath(*args)

    def command_teleport(self, tokens: TokenList, ref: SourceRef) -> Command:
        node = tokens.eat_one("%i")
        if node is None:
            self.error("Expecting node name", ref)
        return Teleport(node)

    def command_call_mod(self, tokens: TokenList, ref: SourceRef) -> Command:
        cond = tokens.eat_one("%e")
        name = tokens.eat_one("%i")
        if name is None:
            self.error("Expecting mod name", ref)
        return CallMod(name, cond)

    def command_skip(self, tokens: TokenList, ref: SourceRef) -> Command:
        count = tokens.eat_one("%n")
        if not isinstance(count, int):
            self.error("Expecting skip count", ref)
        return Skip(count)

    def command_return(self, tokens: TokenList, ref: SourceRef) -> Command:
        return Return()
