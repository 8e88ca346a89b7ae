from decimal import Decimal

import pytest

from desechos.unidades import KG, LB, LB_POR_KG, a_unidad, kg_a_lb, lb_a_kg, peso3, subtitulo


@pytest.mark.parametrize("valor", ["0", "0.5", "2.20462262185", "9999"])
def test_ida_y_vuelta_kg_lb(valor):
    x = Decimal(valor)
    assert abs(lb_a_kg(kg_a_lb(x)) - x) < Decimal("1e-6")
    assert abs(kg_a_lb(lb_a_kg(x)) - x) < Decimal("1e-6")


def test_un_kilo_son_el_factor_en_libras():
    assert kg_a_lb(1) == LB_POR_KG
    assert lb_a_kg(LB_POR_KG) == Decimal("1")


def test_a_unidad_redondea_a_dos_decimales_hacia_arriba():
    assert a_unidad(Decimal("2.005"), LB) == Decimal("2.01")
    assert a_unidad(Decimal("3"), KG) == Decimal("1.36")
    assert a_unidad(None) == Decimal("0.00")


def test_peso3_y_subtitulos():
    assert peso3("2.5") == Decimal("2.500")
    assert peso3(Decimal("1.23456")) == Decimal("1.235")
    assert subtitulo(KG) == "Kilogramos"
    assert subtitulo(LB) == "Libras"
