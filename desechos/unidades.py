# desechos/unidades.py
from decimal import Decimal, ROUND_HALF_UP

# Factor único de conversión usado en todo el sistema (libras por kilogramo)
LB_POR_KG = Decimal("2.20462262185")

LB = "lb"
KG = "kg"
UNIDADES = [(LB, "Libras"), (KG, "Kilogramos")]

DOS_DECIMALES = Decimal("0.01")
TRES_DECIMALES = Decimal("0.001")


def lb_a_kg(lb) -> Decimal:
    return Decimal(str(lb or 0)) / LB_POR_KG


def kg_a_lb(kg) -> Decimal:
    return Decimal(str(kg or 0)) * LB_POR_KG


def a_unidad(lb, unidad=LB) -> Decimal:
    """Convierte libras a la unidad pedida y redondea a 2 decimales (formato impreso)."""
    d = Decimal(str(lb or 0))
    if unidad == KG:
        d = lb_a_kg(d)
    return d.quantize(DOS_DECIMALES, rounding=ROUND_HALF_UP)


def subtitulo(unidad) -> str:
    return "Kilogramos" if unidad == KG else "Libras"


def peso3(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(TRES_DECIMALES, rounding=ROUND_HALF_UP)
