from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from loguru import logger

from . import ast as js
from .classifier import classify
from .errors import ParseFailure
from .parser import NESTED_TOO_DEEPLY, parse_program
from .types import ActionTag, NodeKind, Step

LEAF_KINDS = frozenset({NodeKind.Identifier, NodeKind.Literal, NodeKind.TemplateLiteral})

@dataclass
class Extraction:
    """Result of walking one program: the ordered steps plus display tables."""
    steps: List[Step] = field(default_factory=list)
    functions: Dict[str, js.FunctionDeclaration] = field(default_factory=dict)
    variables: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.steps)

def _boundary_step(source: str, action: ActionTag) -> Step:
    lines = source.split("\n")
    if action == ActionTag.Start:
        return Step(kind=NodeKind.Program, source_line=1, action=action,
                    description="Program execution started", code=lines[0])
    return Step(kind=NodeKind.Program, source_line=len(lines), action=action,
                description="Program execution completed", code="")

def error_step(source: str, message: str) -> Step:
    return Step(
        kind=NodeKind.Error,
        source_line=1,
        description=f"Parse error: {message}",
        action=ActionTag.Error,
        code=source,
        output_payload=message,
    )

def walk(program: js.Program, ctx: Extraction, leaf_steps: bool = True) -> Extraction:
    """Pre-order traversal: a node's step precedes the steps of its children."""
    stack: List[Tuple[js.Node, Tuple[js.Node, ...]]] = [
        (child, (program,)) for child in reversed(list(program.children()))
    ]
    while stack:
        node, ancestry = stack.pop()
        if leaf_steps or node.kind not in LEAF_KINDS:
            step = classify(node, ancestry)
            ctx.steps.append(step)
            ctx.variables.update(step.bound_variables)
        if node.kind == NodeKind.FunctionDeclaration:
            ctx.functions[node.name] = node
        below = ancestry + (node,)
        stack.extend((child, below) for child in reversed(list(node.children())))
    return ctx

def extract(source: str | Path, leaf_steps: bool = True) -> Extraction:
    """Turn source text into an Extraction; parse failures become one Error step."""
    text = source.read_text(encoding="utf-8") if isinstance(source, Path) else str(source)
    ctx = Extraction()
    if not text.strip():
        return ctx
    try:
        program = parse_program(text)
        ctx.steps.append(_boundary_step(text, ActionTag.Start))
        walk(program, ctx, leaf_steps=leaf_steps)
    except RecursionError:
        # value rendering recurses per nesting level
        logger.warning("Parse failure at line 1: {}", NESTED_TOO_DEEPLY)
        return Extraction(steps=[error_step(text, NESTED_TOO_DEEPLY)])
    except ParseFailure as e:
        logger.warning("Parse failure at line {}: {}", e.line, e)
        return Extraction(steps=[error_step(text, str(e))])
    ctx.steps.append(_boundary_step(text, ActionTag.End))
    logger.debug("Extracted {} steps ({} functions)", len(ctx.steps), len(ctx.functions))
    return ctx

def parse_code_to_steps(source: str | Path, leaf_steps: bool = True) -> List[Step]:
    return extract(source, leaf_steps=leaf_steps).steps
