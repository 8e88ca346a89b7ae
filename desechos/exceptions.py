# desechos/exceptions.py
"""
Errores del núcleo del registro de desechos.

Las validaciones de entrada usan ``django.core.exceptions.ValidationError``;
aquí solo viven los tipos que no tienen equivalente en Django.
"""
from django.core.exceptions import ObjectDoesNotExist


class NoEncontrado(ObjectDoesNotExist):
    """Etiqueta, registro o lote inexistente."""


class Conflicto(Exception):
    """El estado actual impide la operación (etiqueta no ACTIVA, registro CERRADO, ...)."""

    def __init__(self, mensaje, motivo=None):
        super().__init__(mensaje)
        self.mensaje = mensaje
        self.motivo = motivo


class TipoNoResuelto(LookupError):
    """Un título canónico de columna no tiene tipo de desecho equivalente en el catálogo."""

    def __init__(self, titulo, sugerencia=None):
        mensaje = f"No se encontró un tipo de desecho para '{titulo}'"
        if sugerencia:
            mensaje += f" (¿quizás '{sugerencia}'?)"
        super().__init__(mensaje)
        self.titulo = titulo
        self.sugerencia = sugerencia
