"""Node description (UI schema) and parameter sources."""

from t0ggles_node.node.description import T0GGLES_NODE  # noqa: F401
from t0ggles_node.node.parameters import ItemParameters, ParameterSource  # noqa: F401
