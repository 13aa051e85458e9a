"""
Program document - the structured result of a parse.

A Program is created empty for each parse, filled in record by record, and
handed to the consuming engine whole. Identifiers are free strings; whether a
referenced node or item exists is the engine's concern, not the parser's.

Source references are diagnostic metadata only: they are excluded from
equality so two parses of the same text compare equal.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from ..errors import SourceRef
from ..lexer.tokens import Range
from .ast_nodes import Expr


def _ref_field():
    return field(default=None, compare=False, repr=False)


def _ref_offset(ref: Optional[SourceRef]) -> Optional[int]:
    return ref.offset if ref is not None else None


def _expr(expr: Optional[Expr]) -> Optional[Dict[str, Any]]:
    return expr.to_dict() if expr is not None else None


class VarOperation(IntEnum):
    """Assignment kind of a variable definition (codes read by the engine)."""
    DECLARE = 0     # no operator, no change applied
    SET = 1         # :=
    INCREMENT = 2   # +=
    DECREMENT = 3   # -=
    MULTIPLY = 4    # *=
    DIVIDE = 5      # /=


class LocationKind(IntEnum):
    """Where an item starts (codes read by the engine)."""
    NONE = 0
    PLAYER = 1
    NODE = 3


@dataclass
class VarDefinition:
    name: str
    operation: VarOperation = VarOperation.DECLARE
    expression: Optional[Expr] = None
    ref: Optional[SourceRef] = _ref_field()

    def to_dict(self):
        return {
            '_ref': _ref_offset(self.ref),
            'type': int(self.operation),
            'expression': _expr(self.expression),
        }


@dataclass
class Property:
    label: str
    range: Optional[Range] = None
    ref: Optional[SourceRef] = _ref_field()

    def to_dict(self):
        return {
            '_ref': _ref_offset(self.ref),
            'label': self.label,
            'range': {'from': self.range.low, 'to': self.range.high} if self.range else None,
        }


@dataclass
class Node:
    message: str
    is_final: bool = False
    ref: Optional[SourceRef] = _ref_field()

    def to_dict(self):
        return {'_ref': _ref_offset(self.ref), 'message': self.message, 'isFinal': self.is_final}


@dataclass
class Edge:
    """Directed labelled path; mods name the modifiers run when it is taken."""
    label: str
    mods: List[str] = field(default_factory=list)
    ref: Optional[SourceRef] = _ref_field()

    def to_dict(self):
        return {'_ref': _ref_offset(self.ref), 'label': self.label, 'mods': list(self.mods)}


@dataclass
class Start:
    message: str
    node: str
    ref: Optional[SourceRef] = _ref_field()

    def to_dict(self):
        return {'_ref': _ref_offset(self.ref), 'message': self.message, 'node': self.node}


@dataclass
class Action:
    """Player action, offered either when cond holds or at a given node."""
    label: str
    cond: Optional[Expr] = None
    node: Optional[str] = None
    message: Optional[str] = None
    mods: List[str] = field(default_factory=list)
    ref: Optional[SourceRef] = _ref_field()

    def to_dict(self):
        return {
            '_ref': _ref_offset(self.ref),
            'cond': _expr(self.cond),
            'node': self.node,
            'label': self.label,
            'msg': self.message,
            'mods': list(self.mods),
        }


@dataclass
class Behavior:
    """One reaction entry in an item's pick/check/use/lay list.

    count caps how many times the behavior may fire (set by `first`).
    target is only used by `use ... on <target>`.
    """
    cond: Optional[Expr] = None
    message: Optional[str] = None
    mods: List[str] = field(default_factory=list)
    count: Optional[int] = None
    negated: bool = False
    target: Optional[str] = None
    ref: Optional[SourceRef] = _ref_field()

    BORING: ClassVar[str] = 'boring'

    @property
    def is_boring(self) -> bool:
        return self.BORING in self.mods

    def to_dict(self):
        data = {
            '_ref': _ref_offset(self.ref),
            'cond': _expr(self.cond),
            'msg': self.message,
            'mods': list(self.mods),
            'no': self.negated,
            'count': self.count,
        }
        if self.target is not None:
            data['target'] = self.target
        return data


@dataclass
class ItemLocation:
    kind: LocationKind = LocationKind.NONE
    node: Optional[str] = None
    ref: Optional[SourceRef] = _ref_field()

    def to_dict(self):
        return {'_ref': _ref_offset(self.ref), 'type': int(self.kind), 'node': self.node}


@dataclass
class Item:
    """Interactable entity. Behavior lists keep source order."""
    label: Optional[str] = None
    appendix: Optional[str] = None
    pick: List[Behavior] = field(default_factory=list)
    check: List[Behavior] = field(default_factory=list)
    use: List[Behavior] = field(default_factory=list)
    lay: List[Behavior] = field(default_factory=list)
    resources: List[str] = field(default_factory=list)
    location: Optional[ItemLocation] = None

    CATEGORIES: ClassVar[Tuple[str, ...]] = ('pick', 'check', 'use', 'lay')

    def behaviors(self, category: str) -> List[Behavior]:
        """Behavior list for one category (pick, check, use or lay)."""
        if category not in self.CATEGORIES:
            raise KeyError(category)
        return getattr(self, category)

    def add_resource(self, node: str):
        if node not in self.resources:
            self.resources.append(node)

    def to_dict(self):
        data: Dict[str, Any] = {'label': self.label, 'appendix': self.appendix}
        for category in self.CATEGORIES:
            behaviors = self.behaviors(category)
            if behaviors:
                data[category] = [behavior.to_dict() for behavior in behaviors]
        if self.resources:
            data['resources'] = list(self.resources)
        if self.location is not None:
            data['location'] = self.location.to_dict()
        return data


# Directive commands

@dataclass
class Command:
    """Base class for modifier directive commands."""
    name: ClassVar[str]

    def args(self) -> List[Any]:
        raise NotImplementedError

    def to_list(self) -> List[Any]:
        """Engine form: [name, arg, ...]."""
        return [self.name] + self.args()


@dataclass
class Message(Command):
    text: str
    name: ClassVar[str] = 'message'

    def args(self):
        return [self.text]


@dataclass
class AddItem(Command):
    """Give item to the player, or place it at node when one is given."""
    item: str
    node: Optional[str] = None
    name: ClassVar[str] = 'addItem'

    def args(self):
        return [self.item, self.node]


@dataclass
class DelItem(Command):
    item: str
    name: ClassVar[str] = 'delItem'

    def args(self):
        return [self.item]


@dataclass
class SetItem(Command):
    item: str
    label: str
    appendix: Optional[str] = None
    name: ClassVar[str] = 'setItem'

    def args(self):
        return [self.item, self.label, self.appendix]


@dataclass
class AddResource(Command):
    item: str
    node: str
    name: ClassVar[str] = 'addResource'

    def args(self):
        return [self.item, self.node]


@dataclass
class DelResource(Command):
    item: str
    node: str
    name: ClassVar[str] = 'delResource'

    def args(self):
        return [self.item, self.node]


@dataclass
class SetNode(Command):
    node: str
    message: str
    name: ClassVar[str] = 'setNode'

    def args(self):
        return [self.node, self.message]


@dataclass
class AddPath(Command):
    source: str
    label: str
    target: str
    name: ClassVar[str] = 'addPath'

    def args(self):
        return [self.source, self.label, self.target]


@dataclass
class DelPath(Command):
    source: str
    target: str
    name: ClassVar[str] = 'delPath'

    def args(self):
        return [self.source, self.target]


@dataclass
class Teleport(Command):
    node: str
    name: ClassVar[str] = 'teleport'

    def args(self):
        return [self.node]


@dataclass
class CallMod(Command):
    """Invoke another modifier, optionally only when cond holds."""
    modifier: str
    cond: Optional[Expr] = None
    name: ClassVar[str] = 'callMod'

    def args(self):
        return [self.modifier, _expr(self.cond)]


@dataclass
class Skip(Command):
    """Skip the next count directives."""
    count: int
    name: ClassVar[str] = 'skip'

    def args(self):
        return [self.count]


@dataclass
class Return(Command):
    name: ClassVar[str] = 'return'

    def args(self):
        return []


@dataclass
class SetVariable(Command):
    definition: VarDefinition
    name: ClassVar[str] = 'var'

    def args(self):
        return [self.definition.name, self.definition.to_dict()]


@dataclass
class Directive:
    """One guarded command inside a modifier."""
    command: Command
    cond: Optional[Expr] = None
    ref: Optional[SourceRef] = _ref_field()

    def to_dict(self):
        return {'_ref': _ref_offset(self.ref), 'cond': _expr(self.cond), 'command': self.command.to_list()}


@dataclass
class Program:
    """Top-level document produced by one parse."""
    variables: Dict[str, VarDefinition] = field(default_factory=dict)
    properties: Dict[str, Property] = field(default_factory=dict)
    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: Dict[str, Dict[str, Edge]] = field(default_factory=dict)  # from -> to -> edge
    items: Dict[str, Item] = field(default_factory=dict)
    modifiers: Dict[str, List[Directive]] = field(default_factory=dict)
    boring_defaults: Dict[str, str] = field(default_factory=dict)  # pick, pickNo, check, use, lay, layNo
    actions: List[Action] = field(default_factory=list)
    start: Optional[Start] = None

    def item(self, item_id: str) -> Item:
        """Return the item, creating an empty one on first reference."""
        if item_id not in self.items:
            self.items[item_id] = Item()
        return self.items[item_id]

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-compatible form using the engine's key names."""
        return {
            'variables': {name: var.to_dict() for name, var in self.variables.items()},
            'properties': {name: prop.to_dict() for name, prop in self.properties.items()},
            'actions': [action.to_dict() for action in self.actions],
            'nodes': {name: node.to_dict() for name, node in self.nodes.items()},
            'edges': {
                source: {target: edge.to_dict() for target, edge in targets.items()}
                for source, targets in self.edges.items()
            },
            'items': {name: item.to_dict() for name, item in self.items.items()},
            'boring': dict(self.boring_defaults),
            'modifiers': {
                name: [directive.to_dict() for directive in directives]
                for name, directives in self.modifiers.items()
            },
            'start': self.start.to_dict() if self.start is not None else None,
        }

    def __repr__(self):
        return (f"Program({len(self.nodes)} nodes, {len(self.items)} items, "
                f"{len(self.actions)} actions, {len(self.modifiers)} mods)")
