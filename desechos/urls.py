# desechos/urls.py
from django.urls import path
from . import views

app_name = 'desechos'

urlpatterns = [
    # ============================================================
    # CÓDIGOS QR
    # ============================================================
    path('qr/lotes/', views.lotes, name='lotes'),
    path('qr/lotes/<int:pk>/', views.lote_detalle, name='lote_detalle'),
    path('qr/lotes/<int:pk>/hoja/', views.lote_hoja, name='lote_hoja'),
    path('qr/tipos/', views.tipos_permitidos, name='tipos_permitidos'),
    path('qr/etiquetas/<str:codigo>/', views.etiqueta_info, name='etiqueta_info'),

    # ============================================================
    # REGISTRO DIARIO
    # ============================================================
    path('registro/abierto/', views.registro_abierto, name='registro_abierto'),
    path('registro/escanear/', views.escanear, name='escanear'),
    path('registro/lineas/', views.lineas, name='lineas'),
    path('registro/lineas/<int:pk>/', views.eliminar_linea, name='eliminar_linea'),
    path('registro/historial/', views.historial, name='historial'),
    path('registro/<int:pk>/cerrar/', views.cerrar_registro, name='cerrar_registro'),
    path('registro/<int:pk>/pdf/', views.registro_pdf, name='registro_pdf'),

    # ============================================================
    # REPORTES
    # ============================================================
    path('reportes/registro/<int:pk>/', views.reporte_por_registro, name='reporte_por_registro'),
    path('reportes/diario/', views.reporte_diario, name='reporte_diario'),
    path('reportes/indicadores/', views.indicadores, name='indicadores'),
]
