import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Crop',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField()),
                ('price', models.FloatField(validators=[django.core.validators.MinValueValidator(0)])),
                ('unit', models.CharField(choices=[('kg', 'Kilogram'), ('dozen', 'Dozen'), ('piece', 'Piece'), ('quintal', 'Quintal'), ('ton', 'Ton'), ('bunch', 'Bunch'), ('bag', 'Bag')], max_length=10)),
                ('category', models.CharField(choices=[('vegetables', 'Vegetables'), ('fruits', 'Fruits'), ('grains', 'Grains'), ('spices', 'Spices'), ('herbs', 'Herbs'), ('flowers', 'Flowers'), ('other', 'Other')], max_length=20)),
                ('latitude', models.FloatField()),
                ('longitude', models.FloatField()),
                ('address', models.TextField()),
                ('status', models.CharField(choices=[('available', 'Available'), ('sold', 'Sold'), ('out_of_stock', 'Out of stock')], default='available', max_length=20)),
                ('quantity', models.FloatField(validators=[django.core.validators.MinValueValidator(0)])),
                ('available_quantity', models.FloatField(validators=[django.core.validators.MinValueValidator(0)])),
                ('harvest_date', models.DateField()),
                ('organic', models.BooleanField(default=False)),
                ('quality', models.CharField(choices=[('premium', 'Premium'), ('good', 'Good'), ('average', 'Average')], default='good', max_length=10)),
                ('weight_per_unit', models.FloatField(help_text='Weight per unit in kg', validators=[django.core.validators.MinValueValidator(0)])),
                ('rating', models.FloatField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(5)])),
                ('total_orders', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('farmer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='crops', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['status', 'category'], name='crop_status_category_idx')],
            },
        ),
    ]
