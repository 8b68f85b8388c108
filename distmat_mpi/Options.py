__all__ = [
    "Side",
    "UpperOrLower",
    "Orientation",
    "UnitOrNonUnit",
]

from enum import Enum


class Side(Enum):
    r"""Enum class

    Side of the triangular operand.

    - ``LEFT``: the operand multiplies (or solves) from the left
    - ``RIGHT``: the operand multiplies (or solves) from the right
    """
    LEFT = "Left"
    RIGHT = "Right"


class UpperOrLower(Enum):
    r"""Enum class

    Referenced triangle of a triangular, symmetric or Hermitian operand.
    """
    LOWER = "Lower"
    UPPER = "Upper"


class Orientation(Enum):
    r"""Enum class

    Operation applied to an operand before use.

    - ``NORMAL``: :math:`\mathbf{A}`
    - ``TRANSPOSE``: :math:`\mathbf{A}^T`
    - ``ADJOINT``: :math:`\mathbf{A}^H`
    """
    NORMAL = "Normal"
    TRANSPOSE = "Transpose"
    ADJOINT = "Adjoint"


class UnitOrNonUnit(Enum):
    r"""Enum class

    Whether the diagonal of a triangular operand is implicitly one.
    """
    NON_UNIT = "NonUnit"
    UNIT = "Unit"
