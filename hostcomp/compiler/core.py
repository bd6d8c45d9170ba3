import ast
import warnings
from dataclasses import dataclass, fields, is_dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from hostcomp.errors import (
    DSLValidationError,
    dsl_node_context,
    dsl_source_context,
    format_dsl_diagnostic,
)
from hostcomp.host_model import MONO_BEHAVIOUR, builtin_registry
from hostcomp.ir import (
    Annotated,
    Assign,
    AugAssign,
    Attr,
    Binary,
    Break,
    Call,
    ComponentIR,
    Const,
    Continue,
    DictExpr,
    Expr,
    ExprStmt,
    FieldDecl,
    For,
    FunctionIR,
    GlobalDecl,
    If,
    IfExpr,
    ListExpr,
    ModuleIR,
    Param,
    Return,
    Stmt,
    SubscriptExpr,
    TupleExpr,
    TypeRef,
    Unary,
    Var,
    While,
)
from hostcomp.message_registry import MessageRegistry
from hostcomp.specialize.access import AccessSpecializer
from hostcomp.specialize.condcast import CondCastCompiler, TypeClause
from hostcomp.specialize.ranker import InferenceLog
from hostcomp.specialize.resolver import TypeEnv, merge_envs, resolve_type
from hostcomp.typesys import HostType, TypeRegistry

from .constants import (
    ACCESSOR_NAME,
    BUILTIN_FUNCTIONS,
    CAST_NAME,
    GENERATED_NAME_PREFIX,
    REDEFINABLE_DECORATOR,
    _ALLOWED_BIN,
    _ALLOWED_BOOL,
    _ALLOWED_CMP,
    _ALLOWED_UNARY,
)
from .definition import (
    Declaration,
    DefinitionCompiler,
    DuplicatePolicy,
    InterfaceGroup,
    MessageForm,
    MethodForm,
)
from .helpers import (
    _ast_assigned_names,
    _dotted_name,
    _expect_dotted_name,
    _format_syntax_error,
    _is_docstring_expr,
    _optional_type_designator,
)

_RESERVED_NAMES = {ACCESSOR_NAME, CAST_NAME}


@dataclass
class _ComponentSource:
    node: ast.ClassDef
    host_type: HostType
    constant: bool


class ComponentCompiler:
    def __init__(
        self,
        messages: Optional[MessageRegistry] = None,
        *,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.KEEP_LAST,
        inference_log: Optional[InferenceLog] = None,
    ):
        """Create a compiler for component definition sources."""
        self.messages = messages or MessageRegistry()
        self.duplicate_policy = duplicate_policy
        self.inference_log = inference_log
        self._reset()

    def _reset(self) -> None:
        self.registry: TypeRegistry = builtin_registry()
        self.condcast = CondCastCompiler(self.registry, self.inference_log)
        self.access = AccessSpecializer(self.registry, self.condcast, self._gensym)
        self.definitions = DefinitionCompiler(
            self.messages, duplicate_policy=self.duplicate_policy
        )
        self._gensym_counter = 0

    def _gensym(self, prefix: str) -> str:
        self._gensym_counter += 1
        return f"{GENERATED_NAME_PREFIX}{prefix}{self._gensym_counter}"

    def compile(
        self,
        source: str,
        source_path: Optional[str] = None,
        *,
        module_name: Optional[str] = None,
    ) -> ModuleIR:
        """Compile component source into a :class:`ModuleIR`.

        ``module_name`` is the module the host must load before running
        early lifecycle messages; it defaults to the source file stem, and to
        the generated module's own ``__name__`` when no path is known.
        """
        # Reset per-compilation state for deterministic behavior across calls.
        self._reset()
        if module_name is None and source_path is not None:
            module_name = Path(source_path).stem

        with dsl_source_context(source):
            if not source.strip():
                raise DSLValidationError("Source is empty.")
            try:
                module = ast.parse(source)
            except SyntaxError as exc:
                raise DSLValidationError(_format_syntax_error(exc, source)) from exc

            global_nodes: List[ast.AnnAssign] = []
            function_nodes: List[ast.FunctionDef] = []
            class_nodes: List[ast.ClassDef] = []
            top_level_names: Set[str] = set()

            # Pass 1: collect declarations so bodies can reference any of them.
            for node in module.body:
                with dsl_node_context(node):
                    if _is_docstring_expr(node):
                        continue
                    if isinstance(node, ast.AnnAssign):
                        if not isinstance(node.target, ast.Name):
                            raise DSLValidationError("Module-level declaration target must be a name.")
                        name = node.target.id
                        global_nodes.append(node)
                    elif isinstance(node, ast.FunctionDef):
                        name = node.name
                        function_nodes.append(node)
                    elif isinstance(node, ast.ClassDef):
                        name = node.name
                        class_nodes.append(node)
                    elif isinstance(node, ast.Assign):
                        raise DSLValidationError(
                            "Module-level values must be annotated, e.g. `speed: float = 1.0`."
                        )
                    else:
                        raise DSLValidationError(
                            f"Unsupported top-level statement: {type(node).__name__}"
                        )
                    self._check_user_name(name)
                    if name in top_level_names:
                        raise DSLValidationError(f"Duplicate top-level name '{name}'.")
                    top_level_names.add(name)

            components = [self._register_component(node) for node in class_nodes]
            for component in components:
                self._validate_component_field_types(component)

            global_types: Dict[str, Optional[HostType]] = {}
            for node in global_nodes:
                with dsl_node_context(node):
                    global_types[node.target.id] = self._annotation_type(node.annotation)

            base_env = TypeEnv(
                globals=global_types,
                callables=frozenset(fn.name for fn in function_nodes),
            )

            # Pass 2: compile values and bodies.
            globals_ir = [self._compile_global(node, base_env) for node in global_nodes]
            functions_ir = [self._compile_function(fn, base_env) for fn in function_nodes]
            components_ir = [
                self._compile_component(component, base_env, module_name)
                for component in components
            ]

            self._warn_unused_functions(function_nodes, functions_ir, components_ir, globals_ir)
            return ModuleIR(
                globals=globals_ir,
                functions=functions_ir,
                components=components_ir,
                module_name=module_name,
            )

    # ---------------- Declarations ----------------

    def _check_user_name(self, name: str) -> None:
        if name.startswith(GENERATED_NAME_PREFIX):
            raise DSLValidationError(
                f"Name '{name}' uses the reserved '{GENERATED_NAME_PREFIX}' prefix."
            )
        if name in _RESERVED_NAMES:
            raise DSLValidationError(f"'{name}' is a built-in construct and cannot be redefined.")

    def _annotation_type(self, annotation: Optional[ast.AST]) -> Optional[HostType]:
        designator = _optional_type_designator(annotation)
        if designator is None:
            return None
        return self.registry.ensure_type(designator)

    def _register_component(self, node: ast.ClassDef) -> _ComponentSource:
        with dsl_node_context(node):
            constant = True
            for decorator in node.decorator_list:
                if isinstance(decorator, ast.Name) and decorator.id == REDEFINABLE_DECORATOR:
                    constant = False
                    continue
                raise DSLValidationError(
                    f"Only @{REDEFINABLE_DECORATOR} is allowed on components."
                )
            if node.keywords:
                raise DSLValidationError("Component class keywords are not supported.")
            if len(node.bases) > 1:
                raise DSLValidationError("Components must extend MonoBehaviour only.")
            if node.bases:
                base = self.registry.ensure_type(_expect_dotted_name(node.bases[0], "base"))
                if base.full_name != MONO_BEHAVIOUR:
                    raise DSLValidationError("Components must extend MonoBehaviour only.")

            method_names: List[str] = []
            field_types: List[Tuple[str, str]] = []
            for stmt in node.body:
                if isinstance(stmt, ast.FunctionDef):
                    method_names.append(stmt.name)
                elif isinstance(stmt, ast.ClassDef):
                    method_names.extend(
                        child.name for child in stmt.body if isinstance(child, ast.FunctionDef)
                    )
                elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                    with dsl_node_context(stmt):
                        designator = _optional_type_designator(stmt.annotation)
                    if designator is not None:
                        field_types.append((stmt.target.id, designator))

            try:
                host_type = self.registry.register_component(
                    node.name,
                    base=MONO_BEHAVIOUR,
                    methods=method_names,
                    fields=field_types,
                )
            except ValueError as exc:
                raise DSLValidationError(str(exc)) from exc
            return _ComponentSource(node=node, host_type=host_type, constant=constant)

    def _validate_component_field_types(self, component: _ComponentSource) -> None:
        for stmt in component.node.body:
            if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                with dsl_node_context(stmt):
                    self._annotation_type(stmt.annotation)

    def _compile_global(self, node: ast.AnnAssign, env: TypeEnv) -> GlobalDecl:
        with dsl_node_context(node):
            host_type = env.globals[node.target.id]
            value = None
            if node.value is not None:
                value = self._compile_expr(node.value, env)
            return GlobalDecl(
                name=node.target.id,
                type_name=host_type.full_name if host_type is not None else None,
                value=value,
            )

    def _compile_function(self, fn: ast.FunctionDef, base_env: TypeEnv) -> FunctionIR:
        with dsl_node_context(fn):
            if fn.decorator_list:
                raise DSLValidationError("Decorators are not allowed on helper functions.")
            params, env = self._compile_params(fn, base_env, self_type=None)
            body, _ = self._compile_block(fn.body, env, loop_depth=0)
            return FunctionIR(fn.name, params, body)

    def _compile_params(
        self,
        fn: ast.FunctionDef,
        env: TypeEnv,
        self_type: Optional[HostType],
    ) -> Tuple[List[Param], TypeEnv]:
        if fn.returns is not None:
            raise DSLValidationError(
                "Return annotations are not supported; call results are not tracked."
            )
        if fn.args.vararg is not None or fn.args.kwarg is not None:
            raise DSLValidationError("Variadic parameters are not allowed.")
        if fn.args.posonlyargs or fn.args.kwonlyargs or fn.args.defaults:
            raise DSLValidationError("Only regular positional parameters are allowed.")

        args = list(fn.args.args)
        params: List[Param] = []
        if self_type is not None:
            if not args:
                raise DSLValidationError(f"Method '{fn.name}' must take the component as first parameter.")
            receiver = args.pop(0)
            if receiver.annotation is not None:
                raise DSLValidationError("The component parameter cannot be annotated.")
            params.append(Param(receiver.arg, self_type.full_name))
            env = env.bind(receiver.arg, self_type, declared=True)

        for arg in args:
            with dsl_node_context(arg):
                self._check_user_name(arg.arg)
                host_type = self._annotation_type(arg.annotation)
                params.append(
                    Param(arg.arg, host_type.full_name if host_type is not None else None)
                )
                env = env.bind(arg.arg, host_type, declared=host_type is not None)
        return params, env

    def _compile_component(
        self,
        component: _ComponentSource,
        base_env: TypeEnv,
        module_name: Optional[str],
    ) -> ComponentIR:
        node = component.node
        with dsl_node_context(node):
            field_decls: List[FieldDecl] = []
            declarations: List[Declaration] = []
            for stmt in node.body:
                with dsl_node_context(stmt):
                    if _is_docstring_expr(stmt) or isinstance(stmt, ast.Pass):
                        continue
                    if isinstance(stmt, ast.AnnAssign):
                        field_decls.append(self._compile_field(stmt, base_env))
                    elif isinstance(stmt, ast.FunctionDef):
                        name, params, body = self._compile_method(stmt, component.host_type, base_env)
                        declarations.append(MessageForm(name, params, body, node=stmt))
                    elif isinstance(stmt, ast.ClassDef):
                        declarations.append(
                            self._compile_interface_group(stmt, component.host_type, base_env)
                        )
                    else:
                        raise DSLValidationError(
                            "Component body can only contain annotated fields, methods, and interface groups."
                        )

            if not declarations:
                warnings.warn(
                    format_dsl_diagnostic(
                        f"Component '{node.name}' declares no methods; only default lifecycle methods will be generated.",
                        node=node,
                    ),
                    stacklevel=2,
                )

            return self.definitions.compile(
                node.name,
                field_decls,
                declarations,
                constant=component.constant,
                module_name=module_name,
            )

    def _compile_field(self, stmt: ast.AnnAssign, env: TypeEnv) -> FieldDecl:
        if not isinstance(stmt.target, ast.Name):
            raise DSLValidationError("Component field target must be a name.")
        host_type = self._annotation_type(stmt.annotation)
        default = None
        if stmt.value is not None:
            default = self._compile_expr(stmt.value, env)
        return FieldDecl(
            name=stmt.target.id,
            type_name=host_type.full_name if host_type is not None else None,
            default=default,
            native=host_type is not None and host_type.serializable,
        )

    def _compile_method(
        self,
        fn: ast.FunctionDef,
        component_type: HostType,
        base_env: TypeEnv,
    ) -> Tuple[str, List[Param], List[Stmt]]:
        with dsl_node_context(fn):
            if fn.decorator_list:
                raise DSLValidationError("Decorators are not allowed on component methods.")
            if fn.name.startswith("__"):
                raise DSLValidationError(f"Method name '{fn.name}' is reserved.")
            params, env = self._compile_params(fn, base_env, self_type=component_type)
            body, _ = self._compile_block(fn.body, env, loop_depth=0)
            return fn.name, params, body

    def _compile_interface_group(
        self,
        node: ast.ClassDef,
        component_type: HostType,
        base_env: TypeEnv,
    ) -> InterfaceGroup:
        if node.decorator_list or node.keywords:
            raise DSLValidationError("Interface groups cannot have decorators or keywords.")
        if len(node.bases) > 1:
            raise DSLValidationError("Interface groups name exactly one interface.")
        interface = node.name
        if node.bases:
            interface = _expect_dotted_name(node.bases[0], "interface")

        methods: List[MethodForm] = []
        for stmt in node.body:
            with dsl_node_context(stmt):
                if _is_docstring_expr(stmt) or isinstance(stmt, ast.Pass):
                    continue
                if not isinstance(stmt, ast.FunctionDef):
                    raise DSLValidationError("Interface groups can only contain methods.")
                name, params, body = self._compile_method(stmt, component_type, base_env)
                methods.append(MethodForm(name, params, body, node=stmt))
        if not methods:
            raise DSLValidationError(f"Interface group '{interface}' declares no methods.")
        return InterfaceGroup(interface, methods, node=node)

    # ---------------- Statements ----------------

    def _compile_block(
        self, stmts: List[ast.stmt], env: TypeEnv, loop_depth: int
    ) -> Tuple[List[Stmt], TypeEnv]:
        out: List[Stmt] = []
        for index, stmt in enumerate(stmts):
            if index == 0 and _is_docstring_expr(stmt):
                continue
            compiled, env = self._compile_stmt(stmt, env, loop_depth)
            out.extend(compiled)
        return out, env

    def _compile_stmt(
        self, stmt: ast.stmt, env: TypeEnv, loop_depth: int
    ) -> Tuple[List[Stmt], TypeEnv]:
        with dsl_node_context(stmt):
            if isinstance(stmt, ast.Assign):
                if len(stmt.targets) != 1:
                    raise DSLValidationError("Chained assignment is not allowed.")
                value = self._compile_expr(stmt.value, env)
                target = stmt.targets[0]
                if isinstance(target, ast.Name):
                    self._check_user_name(target.id)
                    if target.id not in env.declared:
                        env = env.bind(target.id, resolve_type(value, env, self.registry))
                    return [Assign(Var(target.id), value)], env
                return [Assign(self._compile_assign_target(target, env), value)], env

            if isinstance(stmt, ast.AnnAssign):
                if not isinstance(stmt.target, ast.Name):
                    raise DSLValidationError("Only local names can be annotated.")
                name = stmt.target.id
                self._check_user_name(name)
                host_type = self._annotation_type(stmt.annotation)
                if name in env.declared and env.declared_type(name) != host_type:
                    raise DSLValidationError(f"Conflicting annotation for '{name}'.")
                compiled: List[Stmt] = []
                if stmt.value is not None:
                    compiled.append(Assign(Var(name), self._compile_expr(stmt.value, env)))
                if host_type is None:
                    env = env.bind(name, None)
                else:
                    env = env.bind(name, host_type, declared=True)
                return compiled, env

            if isinstance(stmt, ast.AugAssign):
                op = _ALLOWED_BIN.get(type(stmt.op))
                if op is None:
                    raise DSLValidationError(
                        f"Unsupported augmented operator: {type(stmt.op).__name__}"
                    )
                target = self._compile_assign_target(stmt.target, env)
                value = self._compile_expr(stmt.value, env)
                if isinstance(target, Var):
                    env = env.forget([target.name])
                return [AugAssign(target, op, value)], env

            if isinstance(stmt, ast.Expr):
                if _is_docstring_expr(stmt):
                    return [], env
                if not isinstance(stmt.value, ast.Call):
                    raise DSLValidationError("Only call expressions can be used as statements.")
                return [ExprStmt(self._compile_expr(stmt.value, env))], env

            if isinstance(stmt, ast.If):
                condition = self._compile_expr(stmt.test, env)
                body, body_env = self._compile_block(stmt.body, env, loop_depth)
                orelse, orelse_env = self._compile_block(stmt.orelse, env, loop_depth)
                return [If(condition, body, orelse)], merge_envs(env, body_env, orelse_env)

            if isinstance(stmt, ast.While):
                if stmt.orelse:
                    raise DSLValidationError("while-else is not supported.")
                loop_env = env.forget(_ast_assigned_names(stmt.body))
                condition = self._compile_expr(stmt.test, loop_env)
                body, body_env = self._compile_block(stmt.body, loop_env, loop_depth + 1)
                return [While(condition, body)], merge_envs(loop_env, loop_env, body_env)

            if isinstance(stmt, ast.For):
                if stmt.orelse:
                    raise DSLValidationError("for-else is not supported.")
                if not isinstance(stmt.target, ast.Name):
                    raise DSLValidationError("for loop target must be a simple name.")
                self._check_user_name(stmt.target.id)
                iterable = self._compile_expr(stmt.iter, env)
                loop_env = env.forget(_ast_assigned_names(stmt.body))
                if stmt.target.id not in loop_env.declared:
                    loop_env = loop_env.bind(stmt.target.id, None)
                body, body_env = self._compile_block(stmt.body, loop_env, loop_depth + 1)
                return (
                    [For(stmt.target.id, iterable, body)],
                    merge_envs(loop_env, loop_env, body_env),
                )

            if isinstance(stmt, ast.Match):
                return self._compile_match(stmt, env, loop_depth)

            if isinstance(stmt, ast.Return):
                value = self._compile_expr(stmt.value, env) if stmt.value is not None else None
                return [Return(value)], env

            if isinstance(stmt, (ast.Break, ast.Continue)):
                keyword = "break" if isinstance(stmt, ast.Break) else "continue"
                if loop_depth <= 0:
                    raise DSLValidationError(f"'{keyword}' is only allowed inside loops.")
                return [Break() if isinstance(stmt, ast.Break) else Continue()], env

            if isinstance(stmt, ast.Pass):
                return [], env

            raise DSLValidationError(f"Unsupported statement: {type(stmt).__name__}")

    def _compile_match(
        self, stmt: ast.Match, env: TypeEnv, loop_depth: int
    ) -> Tuple[List[Stmt], TypeEnv]:
        subject = self._compile_expr(stmt.subject, env)
        capture: Optional[str] = None
        clauses: List[TypeClause] = []
        default_case: Optional[ast.match_case] = None

        for index, case in enumerate(stmt.cases):
            with dsl_node_context(case.pattern):
                if case.guard is not None:
                    raise DSLValidationError("Guards are not supported in type dispatch cases.")
                pattern = case.pattern
                if isinstance(pattern, ast.MatchAs) and pattern.pattern is None:
                    if pattern.name is not None:
                        raise DSLValidationError(
                            "Capture-all cases are not supported; use `case _:` as the default."
                        )
                    if index != len(stmt.cases) - 1:
                        raise DSLValidationError("`case _:` must be the last case.")
                    default_case = case
                    continue
                name = None
                if isinstance(pattern, ast.MatchAs):
                    name = pattern.name
                    pattern = pattern.pattern
                if (
                    not isinstance(pattern, ast.MatchClass)
                    or pattern.patterns
                    or pattern.kwd_patterns
                ):
                    raise DSLValidationError(
                        "Type dispatch cases must be class patterns like `case GameObject() as obj:`."
                    )
                designator = _expect_dotted_name(pattern.cls, "type")
                if name is not None:
                    self._check_user_name(name)
                    if capture is not None and name != capture:
                        raise DSLValidationError(
                            f"All cases must capture the same name ('{capture}' vs '{name}')."
                        )
                    capture = name
                clauses.append(
                    TypeClause(designator, self._case_builder(case.body, loop_depth))
                )

        bind = capture or self._gensym("cast")
        bind_type = env.declared_type(capture) if capture is not None else None
        default = None
        if default_case is not None:
            default = self._case_builder(default_case.body, loop_depth)
        compiled = self.condcast.compile_stmt(
            subject, bind, clauses, default, env, bind_type=bind_type
        )

        touched = _ast_assigned_names(stmt.cases)
        after = env.forget(touched)
        if bind not in after.declared:
            after = after.bind(bind, None)
        return compiled, after

    def _case_builder(self, body: List[ast.stmt], loop_depth: int):
        def build(branch_env: TypeEnv) -> List[Stmt]:
            compiled, _ = self._compile_block(body, branch_env, loop_depth)
            return compiled

        return build

    def _compile_assign_target(self, target: ast.AST, env: TypeEnv) -> Expr:
        if isinstance(target, ast.Name):
            self._check_user_name(target.id)
            if not env.is_local(target.id):
                raise DSLValidationError(f"Unknown variable '{target.id}'.")
            return Var(target.id)
        if isinstance(target, ast.Attribute):
            return Attr(self._compile_expr(target.value, env), target.attr)
        if isinstance(target, ast.Subscript):
            if isinstance(target.slice, ast.Slice):
                raise DSLValidationError("Slice assignment is not supported.")
            return SubscriptExpr(
                value=self._compile_expr(target.value, env),
                index=self._compile_expr(target.slice, env),
            )
        raise DSLValidationError("Assignment target must be a variable, attribute, or item.")

    # ---------------- Expressions ----------------

    def _compile_expr(self, expr: ast.AST, env: TypeEnv) -> Expr:
        with dsl_node_context(expr):
            if isinstance(expr, ast.Constant):
                if expr.value is None or isinstance(expr.value, (bool, int, float, str)):
                    return Const(expr.value)
                raise DSLValidationError(
                    "Only int, float, str, bool, and None constants are allowed."
                )

            if isinstance(expr, ast.Name):
                return self._compile_name(expr.id, env)

            if isinstance(expr, ast.Attribute):
                dotted = _dotted_name(expr)
                root = dotted.split(".", 1)[0] if dotted is not None else None
                if dotted is not None and not env.knows(root):
                    host_type = self.registry.lookup(dotted)
                    if host_type is not None:
                        return TypeRef(host_type.full_name, host_type.emit_name)
                return Attr(self._compile_expr(expr.value, env), expr.attr)

            if isinstance(expr, ast.Call):
                return self._compile_call(expr, env)

            if isinstance(expr, ast.List):
                return ListExpr([self._compile_expr(item, env) for item in expr.elts])

            if isinstance(expr, ast.Tuple):
                return TupleExpr([self._compile_expr(item, env) for item in expr.elts])

            if isinstance(expr, ast.Dict):
                if any(key is None for key in expr.keys):
                    raise DSLValidationError("Dict unpacking is not supported.")
                return DictExpr(
                    keys=[self._compile_expr(key, env) for key in expr.keys],
                    values=[self._compile_expr(value, env) for value in expr.values],
                )

            if isinstance(expr, ast.Subscript):
                if isinstance(expr.slice, ast.Slice):
                    raise DSLValidationError("Slice expressions are not supported.")
                return SubscriptExpr(
                    value=self._compile_expr(expr.value, env),
                    index=self._compile_expr(expr.slice, env),
                )

            if isinstance(expr, ast.BinOp):
                op = _ALLOWED_BIN.get(type(expr.op))
                if op is None:
                    raise DSLValidationError(
                        f"Unsupported binary operator: {type(expr.op).__name__}"
                    )
                return Binary(
                    op=op,
                    left=self._compile_expr(expr.left, env),
                    right=self._compile_expr(expr.right, env),
                )

            if isinstance(expr, ast.BoolOp):
                op = _ALLOWED_BOOL[type(expr.op)]
                compiled_values = [self._compile_expr(v, env) for v in expr.values]
                combined = compiled_values[0]
                for value in compiled_values[1:]:
                    combined = Binary(op=op, left=combined, right=value)
                return combined

            if isinstance(expr, ast.UnaryOp):
                op = _ALLOWED_UNARY.get(type(expr.op))
                if op is None:
                    raise DSLValidationError(
                        f"Unsupported unary operator: {type(expr.op).__name__}"
                    )
                return Unary(op=op, value=self._compile_expr(expr.operand, env))

            if isinstance(expr, ast.Compare):
                if len(expr.ops) != 1 or len(expr.comparators) != 1:
                    raise DSLValidationError("Chained comparisons are not supported.")
                op = _ALLOWED_CMP.get(type(expr.ops[0]))
                if op is None:
                    raise DSLValidationError(
                        f"Unsupported comparison operator: {type(expr.ops[0]).__name__}"
                    )
                return Binary(
                    op=op,
                    left=self._compile_expr(expr.left, env),
                    right=self._compile_expr(expr.comparators[0], env),
                )

            if isinstance(expr, ast.IfExp):
                return IfExpr(
                    condition=self._compile_expr(expr.test, env),
                    then=self._compile_expr(expr.body, env),
                    orelse=self._compile_expr(expr.orelse, env),
                )

            raise DSLValidationError(f"Unsupported expression: {type(expr).__name__}")

    def _compile_name(self, name: str, env: TypeEnv) -> Expr:
        if name.startswith(GENERATED_NAME_PREFIX):
            raise DSLValidationError(
                f"Name '{name}' uses the reserved '{GENERATED_NAME_PREFIX}' prefix."
            )
        if env.knows(name):
            return Var(name)
        host_type = self.registry.lookup(name)
        if host_type is not None:
            return TypeRef(host_type.full_name, host_type.emit_name)
        if name in BUILTIN_FUNCTIONS:
            return Var(name)
        raise DSLValidationError(f"Unknown variable '{name}'.")

    def _compile_call(self, expr: ast.Call, env: TypeEnv) -> Expr:
        if expr.keywords:
            raise DSLValidationError("Keyword arguments are not supported.")
        if any(isinstance(arg, ast.Starred) for arg in expr.args):
            raise DSLValidationError("Star arguments are not supported.")

        if isinstance(expr.func, ast.Name) and not env.knows(expr.func.id):
            if expr.func.id == ACCESSOR_NAME:
                args = [self._compile_expr(arg, env) for arg in expr.args]
                return self.access.specialize(args, env)
            if expr.func.id == CAST_NAME:
                if len(expr.args) != 2:
                    raise DSLValidationError("cast expects exactly 2 arguments: (type, value).")
                host_type = self.registry.ensure_type(
                    _expect_dotted_name(expr.args[0], "type")
                )
                return Annotated(self._compile_expr(expr.args[1], env), host_type.full_name)

        return Call(
            func=self._compile_expr(expr.func, env),
            args=[self._compile_expr(arg, env) for arg in expr.args],
        )

    # ---------------- Diagnostics ----------------

    def _warn_unused_functions(
        self,
        function_nodes: List[ast.FunctionDef],
        functions: List[FunctionIR],
        components: List[ComponentIR],
        globals_ir: List[GlobalDecl],
    ) -> None:
        referenced: Set[str] = set()
        for root in [*functions, *components, *globals_ir]:
            _collect_var_names(root, referenced)
        for fn in function_nodes:
            if fn.name not in referenced:
                warnings.warn(
                    format_dsl_diagnostic(
                        f"Helper '{fn.name}' is never called by any component or helper.",
                        node=fn,
                    ),
                    stacklevel=2,
                )


def _collect_var_names(value, out: Set[str]) -> None:
    if isinstance(value, Var):
        out.add(value.name)
        return
    if is_dataclass(value):
        for item in fields(value):
            _collect_var_names(getattr(value, item.name), out)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _collect_var_names(item, out)
