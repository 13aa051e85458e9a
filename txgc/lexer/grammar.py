"""
Token and grammar table for text-game source.

Every pattern is applied by the scanner anchored at the cursor. Keywords
carry a trailing word boundary so that, for example, `nodes` never matches
the start of `nodes_left`.
"""

import re


def keyword(word: str, flags: int = 0) -> re.Pattern:
    """Compile a keyword pattern that refuses to match inside a longer word."""
    return re.compile(word + r'(?![A-Za-z0-9_])', flags)


# Layout
ML_COMMENT_OPEN = re.compile(r'#\|')
ML_COMMENT_CLOSE = re.compile(r'\|#')
COMMENT = re.compile(r'#')
LINE_END = re.compile(r'\n')
BLANK = re.compile(r'[ \t]+')
BLANK_LINE = re.compile(r'[ \t]*(?:\n|\Z)')
COMMENT_LINE = re.compile(r'[ \t]*#')
ML_COMMENT_LINE = re.compile(r'[ \t]*#\|')
COMMA = re.compile(r',')

# Strings
STRING_OPEN = re.compile(r'"')
STRING_CLOSE = re.compile(r'"')
ESCAPE = re.compile(r'\\')

# Line tokens
IDENTIFIER = re.compile(r'[a-zA-Z_0-9]+')
NUMERIC = re.compile(r'[0-9]+(?:\.[0-9]+)?')
INTEGER = re.compile(r'[0-9]+')
RANGE = re.compile(r'([0-9]+(?:\.[0-9]+)?)[ \t]*to[ \t]*([0-9]+(?:\.[0-9]+)?)')
VAR_NAME = re.compile(r'@([a-zA-Z0-9_]+)')
VAR_SIGIL = re.compile(r'@')

# Variable assignment operators
VAR_ASSIGNMENT = re.compile(r':=')
VAR_INCREMENT = re.compile(r'\+=')
VAR_DECREMENT = re.compile(r'-=')
VAR_MULTIPLY = re.compile(r'\*=')
VAR_DIVIDE = re.compile(r'/=')

# Expressions
EXP_OPERATOR = re.compile(r'[+\-*/]')
EXP_COMPARATOR = re.compile(r'>=|<=|==|!=|>|<|=')
EXP_LOGICAL = re.compile(r'&&|\|\||(?:or|and)(?![A-Za-z0-9_])', re.IGNORECASE)
EXP_NOT = re.compile(r'!(?!=)|not(?![A-Za-z0-9_])', re.IGNORECASE)
EXP_FUNCTION = re.compile(r'([a-zA-Z0-9_]+)\(')
EXP_LOCAL_VAR = re.compile(r'\$([a-zA-Z0-9_]+)')
EXP_GLOBAL_VAR = re.compile(r'@([a-zA-Z0-9_]+)')
EXP_PROPERTY = re.compile(r'\.([a-zA-Z0-9_]+)')
EXP_CONSTANT = keyword(r'(true|false|null)', re.IGNORECASE)
EXP_OPEN = re.compile(r'\(')
EXP_CLOSE = re.compile(r'\)')
EXP_SEPARATOR = re.compile(r',')
EXP_ARGUMENT_END = re.compile(r'[),]')
EXP_LINE_TERMINATOR = re.compile(r'\n|#')
EXP_RANGE = re.compile(r'([0-9]+)[ \t]*to[ \t]*([0-9]+)')
EXP_PERCENT = re.compile(r'([0-9]+(?:\.[0-9]+)?)%')
EXP_NUMBER = NUMERIC
EXP_HAS_ITEM = re.compile(r'hasitem[ \t]+')
EXP_AT_NODE = re.compile(r'atnode[ \t]+')
EXP_NO = keyword('no')
EXP_CALLED = keyword('called')
EXP_LEGACY_VAR = re.compile(r'var[ \t]+')

# Statements
VAR = keyword('var')
START = keyword('start')
NODE = keyword('node')
PROPERTY = keyword('property')
PATH = keyword('path')
ACTION = keyword('action')
PICK = keyword('pick')
CHECK = keyword('check')
USE = keyword('use')
LAY = keyword('lay')
RESOURCES = keyword('resources?')
LOCATION = keyword('location')
BORING = keyword('boring')
FIRST = keyword('first')

# Section headers
SECTION_NODES = keyword('nodes')
SECTION_VARS = keyword('vars')
SECTION_PROPERTIES = keyword('properties')
SECTION_ACTIONS = keyword('actions')
SECTION_MAP = keyword('map')
SECTION_ITEM = keyword('item')
SECTION_MOD = keyword('mod')
SECTION_BORING = keyword('boring')

# Behavior categories, in the order they are tried
BEHAVIORS = (
    ('pick', PICK),
    ('check', CHECK),
    ('use', USE),
    ('lay', LAY),
)
