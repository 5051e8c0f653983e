"""Exception types shared by domintel layers.

Only programmer-level faults are raised as exceptions. Network failures are
converted to typed outcomes at the layer that observed them.
"""


class DomintelError(Exception):
    pass


class InvalidInputError(DomintelError):
    """Unsupported record type or a probe precondition that did not hold."""


class ProbeTimeout(DomintelError):
    pass
