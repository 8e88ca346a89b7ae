# desechos/categorias.py
"""
Resolución de tipos de desecho a partir de los títulos fijos del formato impreso.

El formato oficial tiene cinco columnas en un orden que no se puede alterar.
El catálogo de tipos lo administra el hospital y sus nombres no siempre
coinciden con los títulos ("Infecciosos", "Bioinfecciosos", "Desecho comun"...),
así que cada título se resuelve así:

1. coincidencia exacta del nombre normalizado (sin tildes, minúsculas, sin espacios extremos);
2. si no, el primer tipo del catálogo cuyo nombre normalizado *contiene* alguno
   de los sinónimos configurados para ese título (subcadena, no palabra).

Si nada coincide el resultado es ``None`` y se registra una advertencia con
la sugerencia más parecida (thefuzz) para que alguien corrija el catálogo.
"""
import logging
import unicodedata

from thefuzz import process

from .exceptions import TipoNoResuelto

logger = logging.getLogger(__name__)

# Orden de columnas como en el formato físico
COLUMNAS_CANONICAS = [
    "Desechos Infecciosos",
    "Desechos Patológicos",
    "Desechos Punzocortantes",
    "Desechos Especiales",
    "Desecho Común",
]

SINONIMOS = {
    "Desechos Infecciosos": [
        "infeccioso", "infecciosos", "desechos infecciosos", "residuos infecciosos",
        "bioinfeccioso", "bioinfecciosos", "inf",
    ],
    "Desechos Patológicos": [
        "patologico", "patologicos", "anatomopatologico", "anatomopatologicos", "anat", "pat",
    ],
    "Desechos Punzocortantes": [
        "punzocortante", "punzocortantes", "cortopunzante", "cortopunzantes",
        "corto punzantes", "corto-punzantes", "punz", "punzo",
    ],
    "Desechos Especiales": [
        "especial", "especiales", "quimico", "quimicos", "farmaceutico", "farmaceuticos", "esp",
    ],
    "Desecho Común": [
        "comun", "ordinario", "no peligroso", "domiciliario", "com",
    ],
}


def normalizar(texto) -> str:
    descompuesto = unicodedata.normalize("NFD", str(texto or ""))
    sin_tildes = "".join(c for c in descompuesto if unicodedata.category(c) != "Mn")
    return sin_tildes.lower().strip()


def _compilar(tabla):
    compilada = {}
    for titulo, alias in tabla.items():
        vistos = []
        for a in alias:
            n = normalizar(a)
            if n and n not in vistos:
                vistos.append(n)
        compilada[normalizar(titulo)] = tuple(vistos)
    return compilada


# Se compila una sola vez al importar el módulo
_SINONIMOS_NORMALIZADOS = _compilar(SINONIMOS)


def sinonimos_de(titulo):
    return _SINONIMOS_NORMALIZADOS.get(normalizar(titulo), ())


def resolver_tipo_id(tipos, titulo):
    """
    ``tipos`` es un iterable de objetos con ``id`` y ``nombre`` (o dicts con esas
    llaves), en el orden del catálogo. Devuelve el id que corresponde a ``titulo``
    o ``None``.
    """
    catalogo = [_par(t) for t in tipos]
    esperado = normalizar(titulo)

    for tipo_id, nombre in catalogo:
        if nombre == esperado:
            return tipo_id

    alias = sinonimos_de(titulo)
    for tipo_id, nombre in catalogo:
        if any(a in nombre for a in alias):
            return tipo_id
    return None


def sugerir(tipos, titulo):
    nombres = [t["nombre"] if isinstance(t, dict) else t.nombre for t in tipos]
    if not nombres:
        return None
    mejor = process.extractOne(titulo, nombres)
    return mejor[0] if mejor else None


def exigir_tipo_id(tipos, titulo):
    tipos = list(tipos)
    tipo_id = resolver_tipo_id(tipos, titulo)
    if tipo_id is None:
        raise TipoNoResuelto(titulo, sugerencia=sugerir(tipos, titulo))
    return tipo_id


class ResolutorTipos:
    """Resuelve de una vez las cinco columnas canónicas contra un catálogo."""

    def __init__(self, tipos, titulos=None):
        self.tipos = list(tipos)
        self.titulos = list(titulos or COLUMNAS_CANONICAS)
        self.por_titulo = {}
        self.no_resueltos = []
        for titulo in self.titulos:
            tipo_id = resolver_tipo_id(self.tipos, titulo)
            self.por_titulo[titulo] = tipo_id
            if tipo_id is None:
                sugerencia = sugerir(self.tipos, titulo)
                self.no_resueltos.append(titulo)
                logger.warning(
                    "Tipo de desecho sin resolver para la columna '%s' (sugerencia: %s)",
                    titulo, sugerencia,
                )

    def id_para(self, titulo):
        return self.por_titulo.get(titulo)

    def ids(self):
        return [self.por_titulo[t] for t in self.titulos]


def _par(tipo):
    if isinstance(tipo, dict):
        return tipo["id"], normalizar(tipo["nombre"])
    return tipo.id, normalizar(tipo.nombre)
