"""
Funções numéricas comuns às calculadoras de preço, desconto e métricas.

Os valores do diretório de canais chegam como texto com separador de milhar
("1,234.5", "15%"), então toda calculadora passa por ``parse_number`` antes
de qualquer conta. Arredondamentos são feitos em ``Decimal`` para evitar
artefatos de float como ``floor(1.15 * 100) == 114``.
"""
import logging
import math
from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Optional

logger = logging.getLogger(__name__)

_ROUNDING_MODES = {
    "floor": ROUND_FLOOR,
    "ceil": ROUND_CEILING,
    "round": ROUND_HALF_UP,
}


def parse_number(value: Any, field: str = "") -> Optional[float]:
    """
    Converte valores numéricos vindos do diretório de canais.

    Aceita int/float, strings com separador de milhar e sufixo '%'.
    Retorna None para vazio/ausente e para texto não numérico (com aviso),
    nunca 0 silencioso.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return float(value)
    if isinstance(value, Decimal):
        return float(value)

    text = str(value).replace(",", "").replace("%", "").strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        logger.warning(f"Valor não numérico ignorado{f' em {field}' if field else ''}: {value!r}")
        return None
    if math.isnan(number) or math.isinf(number):
        logger.warning(f"Valor numérico inválido{f' em {field}' if field else ''}: {value!r}")
        return None
    return number


def to_decimal(value: Optional[float]) -> Decimal:
    """Ausente ou inválido vira Decimal 0."""
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def floor_to_digits(value: float, digits: int = 0) -> float:
    """
    Arredonda para baixo na precisão configurada.

    digits >= 0: casas decimais (0 -> inteiro, 2 -> centavos)
    digits < 0: dezenas/centenas (-1 -> 10, -2 -> 100)
    """
    quantum = Decimal(1).scaleb(-int(digits))
    return float(to_decimal(value).quantize(quantum, rounding=ROUND_FLOOR))


def round_to_step(value: Decimal, step: Optional[str], round_type: str = "round") -> Decimal:
    """Arredonda para o passo decimal ('0.01', '0.1', '1'); 'none' mantém o valor."""
    if step is None or step == "none":
        return value
    rounding = _ROUNDING_MODES.get(round_type, ROUND_HALF_UP)
    return value.quantize(Decimal(step), rounding=rounding)


def round_half_up(value: float, digits: int = 0) -> float:
    return float(to_decimal(value).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP))


def safe_divide(numerator: Optional[float], denominator: Optional[float]) -> float:
    """Divisão protegida: denominador zero/ausente retorna 0.0 (nunca NaN/Infinity)."""
    if numerator is None or not denominator:
        return 0.0
    result = numerator / denominator
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result
