# desechos/forms.py
# ============================================================
#  IMPORTACIONES
# ============================================================
import base64
import binascii
from decimal import Decimal, ROUND_HALF_UP

from django import forms
from django.conf import settings
from django.utils import timezone

from .codigos import leer_qr, QRIlegible
from .unidades import UNIDADES, LB, KG, kg_a_lb, peso3

PESO_WIDGET = forms.NumberInput(attrs={"step": "0.001", "inputmode": "decimal"})
UNIDAD_INVALIDA = {"invalid_choice": "Parámetro unidad inválido (lb | kg)"}


class SmartDecimalField(forms.DecimalField):
    """Acepta coma o punto decimal ("2,5" → 2.500) y redondea a ``decimal_places``."""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('decimal_places', 3)
        kwargs.setdefault('max_digits', 12)
        kwargs.setdefault('widget', PESO_WIDGET)
        super().__init__(*args, **kwargs)

    def to_python(self, value):
        if isinstance(value, str):
            value = value.replace(" ", "").replace(",", ".")
        val = super().to_python(value)
        if val is None:
            return None
        if not val.is_finite():
            raise forms.ValidationError(self.error_messages["invalid"], code="invalid")
        return val.quantize(Decimal(10) ** -self.decimal_places, rounding=ROUND_HALF_UP)


def _unidad(valor):
    return valor or LB


# =========================
#  Lotes QR
# =========================
class GenerarLoteForm(forms.Form):
    area_id = forms.IntegerField(error_messages={"required": "areaId es requerido"})
    bolsa_id = forms.IntegerField(error_messages={"required": "bolsaId es requerido"})
    tipo_desecho_id = forms.IntegerField(required=False)
    por_hoja = forms.IntegerField(required=False, min_value=1)
    cantidad = forms.IntegerField(required=False, min_value=1)
    con_imagenes = forms.BooleanField(required=False)

    def clean_por_hoja(self):
        return self.cleaned_data.get("por_hoja") or 4


# =========================
#  Registro diario
# =========================
class EscaneoForm(forms.Form):
    """
    ``qr`` es el texto tal cual lo entrega el lector. El peso llega en la unidad
    indicada y se guarda siempre en libras.
    """
    qr = forms.CharField(error_messages={"required": "Falta el código/QR escaneado"})
    peso = SmartDecimalField(min_value=Decimal("0"), error_messages={"required": "Falta el peso"})
    unidad = forms.ChoiceField(choices=UNIDADES, required=False, error_messages=UNIDAD_INVALIDA)
    area_id = forms.IntegerField(required=False)
    bolsa_id = forms.IntegerField(required=False)

    def clean_unidad(self):
        return _unidad(self.cleaned_data.get("unidad"))

    def clean(self):
        cleaned = super().clean()
        crudo = cleaned.get("qr")
        if crudo:
            leido = leer_qr(crudo)
            if isinstance(leido, QRIlegible):
                self.add_error("qr", f"QR ilegible ({leido.motivo})")
            else:
                cleaned["codigo"] = leido.codigo
                # Pista del formulario y pista del QR deben coincidir si llegan ambas
                for campo, del_qr, texto in (("area_id", leido.area_id, "área"),
                                             ("bolsa_id", leido.bolsa_id, "bolsa")):
                    enviado = cleaned.get(campo)
                    if enviado and del_qr and enviado != del_qr:
                        self.add_error(campo, f"El QR no coincide con la {texto} indicada")
                    else:
                        cleaned[campo] = enviado or del_qr

        peso = cleaned.get("peso")
        if peso is not None:
            cleaned["peso_lb"] = peso3(kg_a_lb(peso)) if cleaned.get("unidad") == KG else peso
        return cleaned


class CierreForm(forms.Form):
    unidad = forms.ChoiceField(choices=UNIDADES, required=False, error_messages=UNIDAD_INVALIDA)
    solo_areas_con_datos = forms.BooleanField(required=False)
    pdf = forms.FileField(required=False)
    pdf_base64 = forms.CharField(required=False)
    nombre_archivo = forms.CharField(required=False, max_length=120)

    def clean_unidad(self):
        return _unidad(self.cleaned_data.get("unidad"))

    def clean(self):
        cleaned = super().clean()
        maximo = settings.DESECHOS_PDF_MAX_BYTES
        archivo = cleaned.get("pdf")
        texto = (cleaned.get("pdf_base64") or "").strip()

        contenido = b""
        if archivo:
            if archivo.size > maximo:
                raise forms.ValidationError("El PDF excede el tamaño máximo permitido")
            contenido = archivo.read()
            cleaned["nombre_archivo"] = cleaned.get("nombre_archivo") or archivo.name
        elif texto:
            if texto.startswith("data:") and "," in texto:
                texto = texto.split(",", 1)[1]
            try:
                contenido = base64.b64decode(texto, validate=True)
            except (binascii.Error, ValueError):
                raise forms.ValidationError("El PDF en base64 no es válido")
            if len(contenido) > maximo:
                raise forms.ValidationError("El PDF excede el tamaño máximo permitido")

        cleaned["contenido"] = contenido
        return cleaned


class ReporteForm(forms.Form):
    unidad = forms.ChoiceField(choices=UNIDADES, required=False, error_messages=UNIDAD_INVALIDA)
    solo_areas_con_datos = forms.BooleanField(required=False)
    fecha = forms.DateField(required=False, error_messages={"invalid": "Parámetro fecha inválido (YYYY-MM-DD)"})
    desde = forms.DateField(required=False, error_messages={"invalid": "Parámetros desde/hasta inválidos"})
    hasta = forms.DateField(required=False, error_messages={"invalid": "Parámetros desde/hasta inválidos"})

    def clean_unidad(self):
        return _unidad(self.cleaned_data.get("unidad"))

    def clean(self):
        cleaned = super().clean()
        if self.errors:
            return cleaned
        desde, hasta = cleaned.get("desde"), cleaned.get("hasta")
        if desde or hasta:
            if not (desde and hasta):
                raise forms.ValidationError("Parámetros desde/hasta inválidos")
            if hasta < desde:
                raise forms.ValidationError("El rango de fechas es inválido (desde > hasta)")
        else:
            dia = cleaned.get("fecha") or timezone.localdate()
            desde = hasta = dia
        cleaned["desde"], cleaned["hasta"] = desde, hasta
        return cleaned


# =========================
#  Listados
# =========================
class PaginaForm(forms.Form):
    page = forms.IntegerField(required=False, min_value=1)
    page_size = forms.IntegerField(required=False, min_value=1)

    def clean_page(self):
        return self.cleaned_data.get("page") or 1

    def clean_page_size(self):
        return min(self.cleaned_data.get("page_size") or 20, 100)


class LineasFiltroForm(PaginaForm):
    ALCANCES = [("abierto", "Registro abierto"), ("hoy", "Registros de hoy")]

    alcance = forms.ChoiceField(choices=ALCANCES, required=False)
    area_id = forms.IntegerField(required=False)
    bolsa_id = forms.IntegerField(required=False)
    codigo = forms.CharField(required=False)

    def clean_alcance(self):
        return self.cleaned_data.get("alcance") or "abierto"


class HistorialFiltroForm(PaginaForm):
    desde = forms.DateField(required=False)
    hasta = forms.DateField(required=False)
    cerrado_por = forms.IntegerField(required=False)
    encargado = forms.CharField(required=False)
