#!/usr/bin/env python3
"""
Rename rules for Media Organizer
Computes the new relative path of a media file from a NamingContext.

A rule is a short snippet of Python-syntax statements that ends with a `return` of the
new relative path. The snippet is parsed with `ast` and run by a small interpreter that
only knows the context fields, a handful of helpers and plain string operations: there is
no access to builtins, imports, attributes (other than string methods) or loops, since rule
text may come from the user.

Names available to a rule:
    type, season_number, episode_number, movie_name, episode_name, tvshow_name,
    file, tmdb_id, release_year, extname(path), str, int, len, min, max

Example:
    ext = extname(file)
    return f"Season {season_number:02d}/{tvshow_name} - S{season_number:02d}E{episode_number:02d}{ext}"
"""

import ast
import operator
import re
import textwrap
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from media_path import Path, basename, extname, sanitize_filename, split


PLEX = '''
ext = extname(file)
if type == "movie":
    if release_year:
        return f"{movie_name} ({release_year}){ext}"
    return f"{movie_name}{ext}"

season = f"{season_number:02d}"
episode = f"{episode_number:02d}"
return f"Season {season}/{tvshow_name} - S{season}E{episode} - {episode_name}{ext}"
'''

EMBY = '''
ext = extname(file)
if type == "movie":
    if release_year:
        return f"{movie_name} ({release_year}){ext}"
    return f"{movie_name}{ext}"

return f"Season {season_number}/{tvshow_name} S{season_number}E{episode_number} {episode_name}{ext}"
'''

BUILTIN_RULES = {
    'plex': PLEX,
    'emby': EMBY,
}

# Longest string a rule may build
MAX_STRING_LENGTH = 4096


class RuleEvaluationError(Exception):
    """Raised when a rule cannot be parsed or fails while running"""

    def __init__(self, rule: str, message: str):
        self.rule = rule
        self.original_message = message
        super().__init__(f"Error executing rename rule code:\n{rule}\n\nOriginal error: {message}")


@dataclass
class NamingContext:
    """Everything a rule can see about the file being renamed"""
    type: str  # "movie" or "tv"
    season_number: int = 0
    episode_number: int = 0
    movie_name: str = ""
    episode_name: str = ""
    tvshow_name: str = ""
    file: str = ""
    tmdb_id: str = ""
    release_year: str = ""

    def bindings(self) -> Dict[str, Any]:
        return asdict(self)


def _rule_extname(path: str) -> str:
    return extname(basename(path))


SAFE_FUNCTIONS = {
    'extname': _rule_extname,
    'str': str,
    'int': int,
    'len': len,
    'min': min,
    'max': max,
}

SAFE_STR_METHODS = {
    'capitalize', 'endswith', 'join', 'ljust', 'lower', 'lstrip', 'replace', 'rjust',
    'rstrip', 'split', 'startswith', 'strip', 'title', 'upper', 'zfill',
}

BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

UNARY_OPERATORS = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

COMPARE_OPERATORS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}

CONVERSIONS = {
    ord('s'): str,
    ord('r'): repr,
    ord('a'): ascii,
}

# str methods whose first argument is the width of the result
PADDING_STR_METHODS = {'ljust', 'rjust', 'zfill'}

# Marks a block that finished without a return statement
_NO_RETURN = object()


class UnsupportedSyntaxError(Exception):
    pass


def _check_length(length: int) -> None:
    if length > MAX_STRING_LENGTH:
        raise ValueError(f"string longer than {MAX_STRING_LENGTH} characters")


def _check_format_spec(spec: str) -> None:
    # Width and precision both bound the size of the formatted text
    for number in re.findall(r'\d+', spec):
        _check_length(int(number))


def _projected_method_length(target: str, method: str, args: List[Any]) -> int:
    """Upper bound of the result length of a str method, computed before calling it"""
    if method in PADDING_STR_METHODS and args and isinstance(args[0], int):
        return max(len(target), args[0])
    if method == 'replace' and len(args) >= 2 and isinstance(args[0], str) and isinstance(args[1], str):
        old, new = args[0], args[1]
        count = target.count(old) if old else len(target) + 1
        return len(target) + count * max(len(new) - len(old), 0)
    if method == 'join' and args:
        items = list(args[0])
        return sum(len(item) for item in items if isinstance(item, str)) + len(target) * len(items)
    return len(target)


class _RuleInterpreter:
    """Tree-walking evaluator for the statements allowed in a rule"""

    def __init__(self, bindings: Dict[str, Any]):
        self.scope = dict(bindings)

    def run(self, statements: List[ast.stmt]) -> Any:
        result = self._exec_block(statements)
        return None if result is _NO_RETURN else result

    def _exec_block(self, statements: List[ast.stmt]) -> Any:
        for statement in statements:
            result = self._exec(statement)
            if result is not _NO_RETURN:
                return result
        return _NO_RETURN

    def _exec(self, node: ast.stmt) -> Any:
        if isinstance(node, ast.Return):
            return None if node.value is None else self._eval(node.value)
        if isinstance(node, ast.Assign):
            value = self._eval(node.value)
            for target in node.targets:
                self._assign(target, value)
        elif isinstance(node, ast.AugAssign):
            if not isinstance(node.target, ast.Name):
                raise UnsupportedSyntaxError("only plain names can be assigned")
            current = self._lookup(node.target.id)
            self._assign(node.target, self._binary(node.op, current, self._eval(node.value)))
        elif isinstance(node, ast.If):
            branch = node.body if self._eval(node.test) else node.orelse
            return self._exec_block(branch)
        elif isinstance(node, ast.Expr):
            self._eval(node.value)
        elif not isinstance(node, ast.Pass):
            raise UnsupportedSyntaxError(f"'{type(node).__name__}' statements are not allowed in rules")
        return _NO_RETURN

    def _assign(self, target: ast.expr, value: Any) -> None:
        if isinstance(target, ast.Name):
            if target.id.startswith('__'):
                raise UnsupportedSyntaxError(f"name '{target.id}' is not allowed")
            self.scope[target.id] = value
        elif isinstance(target, (ast.Tuple, ast.List)):
            values = list(value)
            if len(values) != len(target.elts):
                raise ValueError(f"cannot unpack {len(values)} values into {len(target.elts)} names")
            for element, item in zip(target.elts, values):
                self._assign(element, item)
        else:
            raise UnsupportedSyntaxError("only plain names can be assigned")

    def _lookup(self, name: str) -> Any:
        if name in self.scope:
            return self.scope[name]
        if name in SAFE_FUNCTIONS:
            return SAFE_FUNCTIONS[name]
        raise NameError(f"name '{name}' is not defined")

    def _binary(self, op: ast.operator, left: Any, right: Any) -> Any:
        func = BINARY_OPERATORS.get(type(op))
        if func is None:
            raise UnsupportedSyntaxError(f"operator '{type(op).__name__}' is not allowed in rules")
        if isinstance(op, ast.Mult):
            for sequence, count in ((left, right), (right, left)):
                if isinstance(sequence, (str, list, tuple)) and isinstance(count, int):
                    _check_length(len(sequence) * count)
        if isinstance(op, ast.Mod) and isinstance(left, str):
            for directive in re.findall(r'%[^a-zA-Z%]*', left):
                _check_format_spec(directive)
        result = func(left, right)
        if isinstance(result, (str, list, tuple)):
            _check_length(len(result))
        return result

    def _eval(self, node: ast.expr) -> Any:
        if isinstance(node, ast.Constant):
            if not isinstance(node.value, (str, int, float, bool, type(None))):
                raise UnsupportedSyntaxError(f"constant {node.value!r} is not allowed")
            return node.value
        if isinstance(node, ast.Name):
            return self._lookup(node.id)
        if isinstance(node, ast.JoinedStr):
            result = ''.join(str(self._eval(value)) for value in node.values)
            _check_length(len(result))
            return result
        if isinstance(node, ast.FormattedValue):
            value = self._eval(node.value)
            if node.conversion in CONVERSIONS:
                value = CONVERSIONS[node.conversion](value)
            spec = self._eval(node.format_spec) if node.format_spec is not None else ''
            _check_format_spec(spec)
            result = format(value, spec)
            _check_length(len(result))
            return result
        if isinstance(node, ast.BinOp):
            return self._binary(node.op, self._eval(node.left), self._eval(node.right))
        if isinstance(node, ast.UnaryOp):
            func = UNARY_OPERATORS.get(type(node.op))
            if func is None:
                raise UnsupportedSyntaxError(f"operator '{type(node.op).__name__}' is not allowed in rules")
            return func(self._eval(node.operand))
        if isinstance(node, ast.BoolOp):
            return self._eval_bool(node)
        if isinstance(node, ast.Compare):
            return self._eval_compare(node)
        if isinstance(node, ast.IfExp):
            return self._eval(node.body) if self._eval(node.test) else self._eval(node.orelse)
        if isinstance(node, ast.Call):
            return self._eval_call(node)
        if isinstance(node, ast.Subscript):
            return self._eval_subscript(node)
        if isinstance(node, ast.Slice):
            return slice(
                None if node.lower is None else self._eval(node.lower),
                None if node.upper is None else self._eval(node.upper),
                None if node.step is None else self._eval(node.step),
            )
        if isinstance(node, (ast.Tuple, ast.List)):
            items = [self._eval(element) for element in node.elts]
            return tuple(items) if isinstance(node, ast.Tuple) else items
        raise UnsupportedSyntaxError(f"'{type(node).__name__}' expressions are not allowed in rules")

    def _eval_bool(self, node: ast.BoolOp) -> Any:
        value = None
        for operand in node.values:
            value = self._eval(operand)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value

    def _eval_compare(self, node: ast.Compare) -> bool:
        left = self._eval(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self._eval(comparator)
            if not COMPARE_OPERATORS[type(op)](left, right):
                return False
            left = right
        return True

    def _eval_call(self, node: ast.Call) -> Any:
        args = []
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                raise UnsupportedSyntaxError("star arguments are not allowed in rules")
            args.append(self._eval(arg))
        kwargs = {}
        for keyword in node.keywords:
            if keyword.arg is None:
                raise UnsupportedSyntaxError("keyword unpacking is not allowed in rules")
            kwargs[keyword.arg] = self._eval(keyword.value)

        if isinstance(node.func, ast.Name):
            func = SAFE_FUNCTIONS.get(node.func.id)
            if func is None:
                if node.func.id in self.scope:
                    raise TypeError(f"'{node.func.id}' is not callable")
                raise NameError(f"name '{node.func.id}' is not defined")
            return func(*args, **kwargs)

        if isinstance(node.func, ast.Attribute):
            target = self._eval(node.func.value)
            method = node.func.attr
            if not isinstance(target, str) or method not in SAFE_STR_METHODS:
                raise UnsupportedSyntaxError(f"method '{method}' is not allowed in rules")
            _check_length(_projected_method_length(target, method, args))
            result = getattr(target, method)(*args, **kwargs)
            if isinstance(result, str):
                _check_length(len(result))
            return result

        raise UnsupportedSyntaxError("only helper functions and string methods can be called in rules")

    def _eval_subscript(self, node: ast.Subscript) -> Any:
        value = self._eval(node.value)
        if not isinstance(value, (str, list, tuple)):
            raise TypeError(f"'{type(value).__name__}' object is not subscriptable")
        index = node.slice
        # Python < 3.9 wraps plain indexes
        if type(index).__name__ == 'Index':
            index = index.value
        return value[self._eval(index)]


def _parse_rule(rule: str) -> List[ast.stmt]:
    body = textwrap.dedent(rule).strip('\n')
    if not body.strip():
        return []
    # Wrap in a function so that top-level `return` is valid syntax
    source = "def __rule__():\n" + textwrap.indent(body, '    ')
    tree = ast.parse(source, filename='<rename rule>', mode='exec')
    return tree.body[0].body


def generate_file_name(rule: str, context: NamingContext) -> Optional[str]:
    """
    Run a rename rule against a NamingContext

    Args:
        rule: Rule source (see module docstring)
        context: Context of the file being renamed

    Returns:
        The new relative path returned by the rule, or None if the rule returned nothing
        (meaning no rename should be performed)

    Raises:
        RuleEvaluationError: If the rule has a syntax error, uses something that is not
                             allowed, references an undefined name or fails while running
    """
    try:
        statements = _parse_rule(rule)
        result = _RuleInterpreter(context.bindings()).run(statements)
    except SyntaxError as e:
        raise RuleEvaluationError(rule, f"SyntaxError: {e.msg} (line {max((e.lineno or 1) - 1, 1)})") from e
    except Exception as e:
        raise RuleEvaluationError(rule, f"{type(e).__name__}: {e}") from e

    if result is not None and not isinstance(result, str):
        raise RuleEvaluationError(rule, f"rule must return a string, got {type(result).__name__}")
    return result


def get_rule(name_or_code: str) -> str:
    """Resolve a built-in rule name ("plex", "emby"); anything else is treated as rule code"""
    return BUILTIN_RULES.get(name_or_code.strip().lower(), name_or_code)


def compute_new_path(media_folder: Path, rule: str, context: NamingContext) -> Optional[Path]:
    """
    Compute the destination of a media file inside its media folder

    The rule output may contain sub folders ("Season 01/Show - S01E01.mkv"); each segment
    is sanitized, and the result always stays below media_folder.

    Returns:
        The new Path, or None if the rule returned nothing
    """
    new_relative_path = generate_file_name(rule, context)
    if new_relative_path is None:
        return None

    segments = split(new_relative_path)
    if not segments:
        raise RuleEvaluationError(rule, f"rule returned an empty path: {new_relative_path!r}")
    if any(segment.strip() in ('.', '..') for segment in segments):
        raise RuleEvaluationError(rule, f"rule returned a path outside the media folder: {new_relative_path}")

    new_path = media_folder
    for segment in segments:
        new_path = new_path.join(sanitize_filename(segment))
    return new_path
