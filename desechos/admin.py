from django.contrib import admin
from .models import (
    Area, TipoDesecho, Bolsa,
    LoteQR, EtiquetaQR,
    Registro, RegistroLinea,
)


class SinBorradoMasivo:
    """El borrado masivo del admin no pasa por ``Model.delete``."""

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions


# ============================================================
#  CATÁLOGOS
# ============================================================

@admin.register(Area)
class AreaAdmin(admin.ModelAdmin):
    list_display = ("id", "nombre", "activo")
    list_filter = ("activo",)
    search_fields = ("nombre",)

@admin.register(TipoDesecho)
class TipoDesechoAdmin(admin.ModelAdmin):
    list_display = ("id", "nombre", "activo")
    list_filter = ("activo",)
    search_fields = ("nombre",)

@admin.register(Bolsa)
class BolsaAdmin(admin.ModelAdmin):
    list_display = ("id", "color", "tamano", "tipo_desecho", "activo")
    list_filter = ("tipo_desecho", "activo")
    search_fields = ("color", "tamano", "tipo_desecho__nombre")
    autocomplete_fields = ("tipo_desecho",)

# ============================================================
#  LOTES Y ETIQUETAS (se generan desde la API)
# ============================================================

class EtiquetaInline(admin.TabularInline):
    model = EtiquetaQR
    extra = 0
    fields = ("codigo", "estado", "usado_en", "usado_por")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

@admin.register(LoteQR)
class LoteQRAdmin(SinBorradoMasivo, admin.ModelAdmin):
    list_display = ("id", "created_at", "area", "bolsa", "cantidad", "por_hoja", "created_by")
    list_filter = ("area", "bolsa")
    date_hierarchy = "created_at"
    readonly_fields = ("area", "bolsa", "cantidad", "por_hoja", "created_by", "created_at")
    inlines = [EtiquetaInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        if obj is not None and not obj.puede_eliminar:
            return False
        return super().has_delete_permission(request, obj)

@admin.register(EtiquetaQR)
class EtiquetaQRAdmin(admin.ModelAdmin):
    list_display = ("codigo", "lote", "area", "bolsa", "estado", "usado_en", "usado_por")
    list_filter = ("estado", "area", "bolsa")
    search_fields = ("codigo",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

# ============================================================
#  REGISTRO DIARIO
# ============================================================

class RegistroLineaInline(admin.TabularInline):
    model = RegistroLinea
    extra = 0
    fields = ("etiqueta", "area", "bolsa", "tipo_desecho", "peso_lb", "created_at")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

@admin.register(Registro)
class RegistroAdmin(SinBorradoMasivo, admin.ModelAdmin):
    list_display = ("id", "estado", "abierto_at", "cerrado_at", "total_peso_lb", "creado_por", "cerrado_por")
    list_filter = ("estado",)
    date_hierarchy = "abierto_at"
    readonly_fields = (
        "estado", "abierto_at", "cerrado_at", "total_peso_lb", "pdf", "creado_por", "cerrado_por",
    )
    inlines = [RegistroLineaInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

@admin.register(RegistroLinea)
class RegistroLineaAdmin(SinBorradoMasivo, admin.ModelAdmin):
    list_display = ("id", "registro", "etiqueta", "area", "tipo_desecho", "peso_lb", "created_at")
    list_filter = ("registro__estado", "area", "tipo_desecho")
    search_fields = ("etiqueta__codigo",)
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        # Solo líneas del registro abierto; la etiqueta vuelve a ACTIVA
        if obj is not None and obj.registro.estado != Registro.ABIERTO:
            return False
        return super().has_delete_permission(request, obj)
