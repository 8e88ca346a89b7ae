import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Area',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('nombre', models.CharField(max_length=200, unique=True)),
                ('activo', models.BooleanField(default=True)),
            ],
            options={
                'ordering': ['nombre'],
            },
        ),
        migrations.CreateModel(
            name='TipoDesecho',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('nombre', models.CharField(max_length=120, unique=True)),
                ('activo', models.BooleanField(default=True)),
            ],
            options={
                'verbose_name': 'tipo de desecho',
                'verbose_name_plural': 'tipos de desecho',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Bolsa',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('color', models.CharField(max_length=50)),
                ('tamano', models.CharField(blank=True, max_length=50)),
                ('activo', models.BooleanField(default=True)),
                ('tipo_desecho', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='bolsas', to='desechos.tipodesecho')),
            ],
            options={
                'ordering': ['color', 'tamano'],
            },
        ),
        migrations.CreateModel(
            name='LoteQR',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('cantidad', models.PositiveIntegerField()),
                ('por_hoja', models.PositiveIntegerField(default=4)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('area', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lotes', to='desechos.area')),
                ('bolsa', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lotes', to='desechos.bolsa')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'lote QR',
                'verbose_name_plural': 'lotes QR',
                'ordering': ['-id'],
                'permissions': [('codigos_qr', 'Generar y leer códigos QR')],
            },
        ),
        migrations.CreateModel(
            name='EtiquetaQR',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('codigo', models.CharField(max_length=32, unique=True)),
                ('estado', models.CharField(choices=[('ACTIVA', 'Activa'), ('USADA', 'Usada'), ('ANULADA', 'Anulada')], default='ACTIVA', max_length=10)),
                ('usado_en', models.DateTimeField(blank=True, null=True)),
                ('area', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='desechos.area')),
                ('bolsa', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='desechos.bolsa')),
                ('lote', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='etiquetas', to='desechos.loteqr')),
                ('usado_por', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'etiqueta QR',
                'verbose_name_plural': 'etiquetas QR',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Registro',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('estado', models.CharField(choices=[('ABIERTO', 'Abierto'), ('CERRADO', 'Cerrado')], default='ABIERTO', max_length=10)),
                ('abierto_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('cerrado_at', models.DateTimeField(blank=True, null=True)),
                ('total_peso_lb', models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ('pdf', models.CharField(blank=True, max_length=255)),
                ('cerrado_por', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='registros_cerrados', to=settings.AUTH_USER_MODEL)),
                ('creado_por', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='registros_creados', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-abierto_at'],
                'permissions': [('registro_diario', 'Acceso al registro diario'), ('estadisticas', 'Visualizar estadísticas')],
            },
        ),
        migrations.AddConstraint(
            model_name='registro',
            constraint=models.UniqueConstraint(condition=models.Q(('estado', 'ABIERTO')), fields=('estado',), name='desechos_registro_unico_abierto'),
        ),
        migrations.CreateModel(
            name='RegistroLinea',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('peso_lb', models.DecimalField(decimal_places=3, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('area', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lineas', to='desechos.area')),
                ('bolsa', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lineas', to='desechos.bolsa')),
                ('etiqueta', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='linea', to='desechos.etiquetaqr')),
                ('registro', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lineas', to='desechos.registro')),
                ('tipo_desecho', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lineas', to='desechos.tipodesecho')),
            ],
            options={
                'verbose_name': 'línea de registro',
                'verbose_name_plural': 'líneas de registro',
                'ordering': ['-id'],
            },
        ),
    ]
