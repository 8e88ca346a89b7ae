# desechos/reportes.py
"""
Resumen área × tipo de desecho para el formato oficial de control diario.

Las filas (áreas) y columnas (tipos) siguen el orden del formulario impreso.
Los pesos se suman en libras con ``Decimal`` y se convierten al final.
"""
import datetime
import logging
from collections import defaultdict
from decimal import Decimal

import pandas as pd
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db.models import Sum, Count
from django.utils import timezone

from .categorias import COLUMNAS_CANONICAS, ResolutorTipos, normalizar
from .exceptions import NoEncontrado
from .models import Area, TipoDesecho, Registro, RegistroLinea, nombre_usuario
from .unidades import LB, KG, LB_POR_KG, a_unidad, subtitulo

logger = logging.getLogger(__name__)

# Orden de filas como en el formato físico
AREAS_CANONICAS = [
    "Medicina, Cirugía y Trauma Hombres y Mujeres, Rayos X",
    "Pediatría y Maternidad",
    "Consulta Externa",
    "Emergencia, costurería, psicología, despacho de farmacia, laboratorio, fisioterapia, trabajo social, transporte",
    "Intensivo",
    "Quirófano",
    "Sala de Partos",
    "Central de Equipo",
    "Cocina",
    "Lavandería",
    "Mantenimiento",
    "Intendencia",
    "Administración",
    "Área Verde",
    "Bodegas",
    "Gerencia",
]


def validar_unidad(unidad):
    unidad = str(unidad or LB).strip().lower()
    if unidad not in (LB, KG):
        raise ValidationError("Parámetro unidad inválido (lb | kg)")
    return unidad


def rango_local(desde, hasta=None):
    """[desde 00:00, hasta+1 00:00) en la zona horaria del hospital."""
    hasta = hasta or desde
    if hasta < desde:
        raise ValidationError("El rango de fechas es inválido (desde > hasta)")
    inicio = timezone.make_aware(datetime.datetime.combine(desde, datetime.time.min))
    fin = timezone.make_aware(datetime.datetime.combine(hasta + datetime.timedelta(days=1), datetime.time.min))
    return inicio, fin


def _areas_canonicas():
    """[(area_id | None, titulo)] en el orden del formato."""
    por_nombre = {normalizar(a.nombre): a.id for a in Area.objects.filter(activo=True)}
    filas = []
    for titulo in AREAS_CANONICAS:
        area_id = por_nombre.get(normalizar(titulo))
        if area_id is None:
            logger.warning("Área del formato sin registro en el catálogo: '%s'", titulo)
        filas.append((area_id, titulo))
    return filas


def _encabezado(fecha=None):
    encabezado = dict(settings.DESECHOS_ENCABEZADO)
    encabezado["mostrarFecha"] = True
    if fecha is not None:
        encabezado["fecha"] = fecha.isoformat()
    return encabezado


def construir_resumen(lineas, unidad=LB, solo_areas_con_datos=False, responsables=None):
    """
    Arma el DTO del resumen a partir de un queryset de ``RegistroLinea``.
    ``responsables`` es un dict area_id → nombre, o un texto para todas las filas.
    Devuelve ``(cuerpo, meta)``; quien llama agrega registroId/fecha y encabezado.
    """
    unidad = validar_unidad(unidad)
    advertencias = []

    resolutor = ResolutorTipos(TipoDesecho.objects.filter(activo=True).order_by("id"))
    for titulo in resolutor.no_resueltos:
        advertencias.append(f"Columna sin tipo de desecho en el catálogo: {titulo}")
    columnas = [
        {"id": resolutor.id_para(titulo), "titulo": titulo, "subtitulo": subtitulo(unidad)}
        for titulo in COLUMNAS_CANONICAS
    ]

    areas = _areas_canonicas()
    for area_id, titulo in areas:
        if area_id is None:
            advertencias.append(f"Área sin registro en el catálogo: {titulo}")

    grupos = (
        lineas.values("area_id", "area__nombre", "tipo_desecho_id", "tipo_desecho__nombre")
        .annotate(total_lb=Sum("peso_lb"))
        .order_by()
    )
    agg = defaultdict(Decimal)
    ids_area = {a for a, _ in areas if a is not None}
    ids_tipo = {c["id"] for c in columnas if c["id"] is not None}
    for g in grupos:
        lb = Decimal(g["total_lb"] or 0)
        if g["area_id"] not in ids_area or g["tipo_desecho_id"] not in ids_tipo:
            # Nada se suma a otra columna: se omite y se avisa
            aviso = (
                f"Omitido del formato: {lb} lb de '{g['tipo_desecho__nombre']}' "
                f"en '{g['area__nombre']}'"
            )
            logger.warning(aviso)
            advertencias.append(aviso)
            continue
        agg[(g["area_id"], g["tipo_desecho_id"])] += lb

    filas = []
    for area_id, titulo in areas:
        valores = []
        tiene_datos = False
        for col in columnas:
            lb = agg.get((area_id, col["id"]), Decimal("0")) if area_id and col["id"] else Decimal("0")
            valor = a_unidad(lb, unidad)
            if valor > 0:
                tiene_datos = True
            valores.append({"tipoId": col["id"], "valor": valor})
        if solo_areas_con_datos and not tiene_datos:
            continue
        if isinstance(responsables, dict):
            responsable = responsables.get(area_id, "")
        else:
            responsable = responsables or ""
        filas.append({"areaId": area_id, "area": titulo, "valores": valores, "responsable": responsable})

    totales = []
    for col in columnas:
        suma = sum((agg.get((a, col["id"]), Decimal("0")) for a, _ in areas if a and col["id"]), Decimal("0"))
        totales.append({"tipoId": col["id"], "valor": a_unidad(suma, unidad)})

    cuerpo = {"unidad": unidad, "columnas": columnas, "filas": filas, "totales": totales}
    meta = {
        "generadoEn": timezone.now().isoformat(),
        "factorLbPorKg": float(LB_POR_KG),
        "soloAreasConDatos": bool(solo_areas_con_datos),
        "advertencias": advertencias,
    }
    return cuerpo, meta


def _dto(cabeza, cuerpo, meta, fecha=None):
    dto = dict(cabeza)
    dto["unidad"] = cuerpo["unidad"]
    dto["meta"] = meta
    dto["encabezado"] = _encabezado(fecha)
    dto["columnas"] = cuerpo["columnas"]
    dto["filas"] = cuerpo["filas"]
    dto["totales"] = cuerpo["totales"]
    dto["firma"] = dict(settings.DESECHOS_FIRMA)
    return dto


def resumen_por_registro(registro, unidad=LB, solo_areas_con_datos=False):
    if not isinstance(registro, Registro):
        registro = Registro.objects.select_related("creado_por").filter(pk=registro).first()
        if registro is None:
            raise NoEncontrado("Registro no encontrado")

    cuerpo, meta = construir_resumen(
        RegistroLinea.objects.filter(registro=registro),
        unidad=unidad,
        solo_areas_con_datos=solo_areas_con_datos,
        responsables=registro.responsable,
    )
    meta["rango"] = {
        "desde": registro.abierto_at.isoformat() if registro.abierto_at else None,
        "hasta": registro.cerrado_at.isoformat() if registro.cerrado_at else None,
    }
    meta["criterio"] = "Suma únicamente las líneas del registro indicado."
    fecha = timezone.localdate(registro.abierto_at) if registro.abierto_at else timezone.localdate()
    return _dto({"registroId": registro.pk, "estado": registro.estado}, cuerpo, meta, fecha)


def resumen_por_rango(desde, hasta=None, unidad=LB, solo_areas_con_datos=False):
    hasta = hasta or desde
    inicio, fin = rango_local(desde, hasta)
    lineas = RegistroLinea.objects.filter(
        registro__estado=Registro.CERRADO,
        registro__abierto_at__gte=inicio,
        registro__abierto_at__lt=fin,
    )

    # Primer responsable por área, del registro más reciente
    responsables = {}
    for linea in lineas.select_related("registro__creado_por").order_by("-registro__abierto_at", "-id"):
        if linea.area_id not in responsables:
            responsables[linea.area_id] = nombre_usuario(linea.registro.creado_por)

    cuerpo, meta = construir_resumen(
        lineas, unidad=unidad, solo_areas_con_datos=solo_areas_con_datos, responsables=responsables,
    )
    meta["rango"] = {"desde": inicio.isoformat(), "hasta": fin.isoformat()}
    meta["criterio"] = "Incluye únicamente registros CERRADOS dentro del rango indicado."
    etiqueta = desde.isoformat() if desde == hasta else f"{desde.isoformat()} a {hasta.isoformat()}"
    return _dto({"fecha": etiqueta}, cuerpo, meta)


def resumen_a_csv(resumen) -> str:
    """Tabla del resumen (filas + fila de totales) en CSV."""
    titulos = [c["titulo"] for c in resumen["columnas"]]
    registros = []
    for fila in resumen["filas"]:
        registro = {"Área": fila["area"]}
        registro.update({t: v["valor"] for t, v in zip(titulos, fila["valores"])})
        registro["Responsable"] = fila["responsable"]
        registros.append(registro)
    totales = {"Área": "TOTAL"}
    totales.update({t: v["valor"] for t, v in zip(titulos, resumen["totales"])})
    totales["Responsable"] = ""
    registros.append(totales)

    df = pd.DataFrame(registros, columns=["Área"] + titulos + ["Responsable"])
    return df.to_csv(index=False)


def kpis(ahora=None):
    """Líneas totales, libras de la semana actual (lunes a domingo) y áreas activas."""
    ahora = ahora or timezone.now()
    hoy = timezone.localdate(ahora)
    lunes = hoy - datetime.timedelta(days=hoy.weekday())
    inicio, fin = rango_local(lunes, lunes + datetime.timedelta(days=6))

    conteo = RegistroLinea.objects.aggregate(n=Count("id"))["n"]
    semana = RegistroLinea.objects.filter(created_at__gte=inicio, created_at__lt=fin).aggregate(
        total=Sum("peso_lb")
    )["total"] or Decimal("0")
    return {
        "totalLineas": conteo,
        "pesoSemanaLb": a_unidad(semana, LB),
        "pesoSemanaKg": a_unidad(semana, KG),
        "areasActivas": Area.objects.filter(activo=True).count(),
    }
