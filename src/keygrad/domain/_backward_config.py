"""
Backward-pass configuration value object.

A `BackwardConfig` selects how a single `backward` invocation treats the
computation graph. It is immutable: the builder-style `with_*` methods
return new instances so a config can be shared between passes safely.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class BackwardConfig:
    """
    Configuration for one reverse-mode pass.

    Attributes
    ----------
    keep_graph : bool
        If True, backward functions capture the live, graph-connected
        operands so that the gradients produced by this pass are themselves
        differentiable (e.g. for Hessian-vector products). If False,
        backward functions operate on frozen leaf snapshots of the operands
        and repeated passes never grow the graph attached to the leaves.
    zero_grad : bool
        If True, the accumulators of every node reached by the pass are
        cleared before the seed gradient is stored.
    """

    keep_graph: bool = False
    zero_grad: bool = False

    def with_keep_graph(self, keep_graph: bool) -> "BackwardConfig":
        """
        Return a copy of this config with `keep_graph` replaced.

        Parameters
        ----------
        keep_graph : bool
            New graph-retention flag.

        Returns
        -------
        BackwardConfig
            A new configuration instance.
        """
        return replace(self, keep_graph=bool(keep_graph))

    def with_zero_grad(self, zero_grad: bool) -> "BackwardConfig":
        """
        Return a copy of this config with `zero_grad` replaced.

        Parameters
        ----------
        zero_grad : bool
            New zero-seeding flag.

        Returns
        -------
        BackwardConfig
            A new configuration instance.
        """
        return replace(self, zero_grad=bool(zero_grad))
