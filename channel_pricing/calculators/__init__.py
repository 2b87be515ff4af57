from .domestic import DomesticPriceCalculator
from .overseas import OverseasPriceCalculator
from .japan import JapanPriceCalculator, OwnShopPriceCalculator

__all__ = [
    "DomesticPriceCalculator",
    "OverseasPriceCalculator",
    "JapanPriceCalculator",
    "OwnShopPriceCalculator",
]
