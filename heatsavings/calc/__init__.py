"""
Calculation Module - heating cost strategies and savings metrics.

Features:
- Oil, gas, wood and mixed oil/wood cost models
- Ordered strategy selection with oil as fallback
- Heat pump comparison with 1/5/10-year cost horizons
"""

from .strategies import (
    STRATEGIES,
    ConsumptionBreakdown,
    GasStrategy,
    HeatingStrategy,
    OilStrategy,
    OilWoodMixedStrategy,
    PdfRow,
    StrategyId,
    StrategyResultBasics,
    WoodStrategy,
    compute_basics,
    get_strategy,
    pick_strategy,
)
from .metrics import (
    HEAT_PUMP_COP,
    CostHorizon,
    Metrics,
    NewSystemMetrics,
    compute_metrics,
)

__all__ = [
    'STRATEGIES',
    'ConsumptionBreakdown',
    'GasStrategy',
    'HeatingStrategy',
    'OilStrategy',
    'OilWoodMixedStrategy',
    'PdfRow',
    'StrategyId',
    'StrategyResultBasics',
    'WoodStrategy',
    'compute_basics',
    'get_strategy',
    'pick_strategy',
    'HEAT_PUMP_COP',
    'CostHorizon',
    'Metrics',
    'NewSystemMetrics',
    'compute_metrics',
]
