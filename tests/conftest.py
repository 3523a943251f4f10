import re

import pytest

from ucode.ucode_datatypes import Scope
from ucode.ucode_engine import Engine
from ucode.ucode_errors import CompileError

_TOKEN = re.compile(r'\s*(?:(\d+)|("(?:[^"\\]|\\.)*")|([A-Za-z_][A-Za-z0-9_]*)|(\S))')


class ToyEngine(Engine):
    """Just enough of a language for front-end tests.

    Programs are `;`-separated statements, either `return <expr>` or a bare
    expression, optionally inside `{ ... }`. Expressions: integers, strings,
    names, `a.b` lookups, calls and `+`/`-`.
    """

    def __init__(self, config):
        self.config = config
        self.source_name = None
        self.source_offset = None
        self.source_text = None
        self.modules = None
        self.result = None
        self.globals_snapshot = None
        self.root_snapshot = None
        self.freed = False

    # --- compile ---
    def compile(self, config, source):
        self.source_name = source.name
        self.source_text = source.text()
        self.source_offset = source.offset
        self._toks = self._tokenize(self.source_text)
        self._pos = 0
        stmts = self._block(end=None)
        return stmts

    def _tokenize(self, text):
        toks = []
        for num, string, name, punct in _TOKEN.findall(text):
            if num:
                toks.append(("num", int(num)))
            elif string:
                toks.append(("str", string[1:-1]))
            elif name:
                toks.append(("name", name))
            elif punct:
                toks.append(("op", punct))
        return toks

    def _peek(self):
        return self._toks[self._pos] if self._pos < len(self._toks) else ("eof", None)

    def _take(self, kind=None, value=None):
        tok = self._peek()
        if (kind and tok[0] != kind) or (value is not None and tok[1] != value):
            want = value if value is not None else kind
            raise CompileError(f"Syntax error: Expecting '{want}'\n")
        self._pos += 1
        return tok

    def _block(self, end):
        stmts = []
        while True:
            tok = self._peek()
            if tok == ("op", end) or (end is None and tok[0] == "eof"):
                return stmts
            if tok[0] == "eof":
                raise CompileError(f"Syntax error: Expecting '{end}'\n")
            if tok == ("op", ";"):
                self._pos += 1
            elif tok == ("op", "{"):
                self._pos += 1
                stmts.extend(self._block("}"))
                self._take("op", "}")
            elif tok == ("name", "return"):
                self._pos += 1
                stmts.append(("return", self._expr()))
            else:
                stmts.append(("expr", self._expr()))

    def _expr(self):
        node = self._atom()
        while self._peek() in (("op", "+"), ("op", "-")):
            op = self._take()[1]
            node = ("bin", op, node, self._atom())
        return node

    def _atom(self):
        kind, value = self._peek()
        if kind in ("num", "str"):
            self._pos += 1
            node = (kind, value)
        elif kind == "name":
            self._pos += 1
            node = ("name", value)
        elif (kind, value) == ("op", "("):
            self._pos += 1
            node = self._expr()
            self._take("op", ")")
        else:
            raise CompileError(f"Syntax error: Unexpected token {value!r}\n")
        while True:
            if self._peek() == ("op", "."):
                self._pos += 1
                node = ("attr", node, self._take("name")[1])
            elif self._peek() == ("op", "("):
                self._pos += 1
                args = []
                while self._peek() != ("op", ")"):
                    args.append(self._expr())
                    if self._peek() == ("op", ","):
                        self._pos += 1
                self._take("op", ")")
                node = ("call", node, args)
            else:
                return node

    # --- runtime ---
    def init_globals(self, scope: Scope):
        scope["print"] = lambda *args: print(*args)
        scope["length"] = len

    def execute(self, entry, root_scope, modules):
        self.modules = list(modules)
        self.globals_snapshot = dict(root_scope.parent.bindings)
        self.root_snapshot = dict(root_scope.bindings)
        try:
            for kind, expr in entry:
                value = self._eval(expr, root_scope)
                if kind == "return":
                    self.result = value
                    break
        except (TypeError, KeyError) as e:
            print(f"Runtime error: {e}")
            return 1
        return 0

    def _eval(self, node, scope):
        kind = node[0]
        if kind in ("num", "str"):
            return node[1]
        if kind == "name":
            return scope.get(node[1])
        if kind == "attr":
            base = self._eval(node[1], scope)
            return base.get(node[2]) if isinstance(base, dict) else None
        if kind == "call":
            fn = self._eval(node[1], scope)
            return fn(*[self._eval(a, scope) for a in node[2]])
        left, right = self._eval(node[2], scope), self._eval(node[3], scope)
        return left + right if node[1] == "+" else left - right

    def dump(self, entry):
        return "digraph {\n" + "".join(f'  n{i} [label="{kind}"];\n' for i, (kind, _) in enumerate(entry)) + "}\n"

    def free(self):
        self.freed = True


class NoDumpEngine(ToyEngine):
    dump = Engine.dump


@pytest.fixture
def engines():
    """An engine factory that remembers every engine it built."""
    created = []

    def factory(config):
        engine = ToyEngine(config)
        created.append(engine)
        return engine

    factory.created = created
    return factory
