# Generated migration for coupons, campaigns and their usage rows

import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Coupon',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code', models.CharField(help_text='Unique coupon code, stored upper-case', max_length=50, unique=True)),
                ('description', models.TextField(blank=True, help_text='Description shown to customers')),
                ('discount_type', models.CharField(choices=[('PERCENTAGE', 'Percentage Discount'), ('FIXED', 'Fixed Amount Discount'), ('FREE_SHIPPING', 'Free Shipping')], default='PERCENTAGE', max_length=20)),
                ('discount_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Percent (0-100) or fixed amount, depending on discount_type', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('max_discount', models.DecimalField(blank=True, decimal_places=2, help_text='Caps percentage discounts', max_digits=12, null=True)),
                ('min_purchase', models.DecimalField(blank=True, decimal_places=2, help_text='Minimum cart subtotal required', max_digits=12, null=True)),
                ('usage_limit', models.PositiveIntegerField(blank=True, help_text='Total uses allowed', null=True)),
                ('usage_limit_per_user', models.PositiveIntegerField(blank=True, help_text='Uses allowed per user', null=True)),
                ('usage_count', models.PositiveIntegerField(default=0, help_text='Number of orders that applied this coupon')),
                ('is_active', models.BooleanField(default=True)),
                ('start_date', models.DateTimeField(blank=True, null=True)),
                ('end_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Coupon',
                'verbose_name_plural': 'Coupons',
                'db_table': 'promotion_coupons',
                'ordering': ('-created_at',),
                'indexes': [models.Index(fields=['is_active', 'start_date', 'end_date'], name='idx_coupon_validity')],
            },
        ),
        migrations.CreateModel(
            name='Campaign',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('type', models.CharField(choices=[('DISCOUNT', 'Discount'), ('BOGO', 'Buy One Get One'), ('FREE_SHIPPING', 'Free Shipping'), ('POINTS_MULTIPLIER', 'Points Multiplier')], default='DISCOUNT', max_length=20)),
                ('discount_type', models.CharField(blank=True, choices=[('PERCENTAGE', 'Percentage'), ('FIXED', 'Fixed Amount')], default='', max_length=20)),
                ('discount_value', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('min_purchase', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('points_multiplier', models.DecimalField(decimal_places=2, default=Decimal('1.00'), help_text='Loyalty points multiplier for POINTS_MULTIPLIER campaigns', max_digits=5)),
                ('is_active', models.BooleanField(default=True)),
                ('start_date', models.DateTimeField(blank=True, null=True)),
                ('end_date', models.DateTimeField(blank=True, null=True)),
                ('usage_limit', models.PositiveIntegerField(blank=True, null=True)),
                ('usage_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Campaign',
                'verbose_name_plural': 'Campaigns',
                'db_table': 'promotion_campaigns',
                'ordering': ('created_at',),
                'indexes': [models.Index(fields=['is_active', 'start_date', 'end_date'], name='idx_campaign_validity')],
            },
        ),
        migrations.CreateModel(
            name='CouponUsage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('discount_amount', models.DecimalField(decimal_places=2, help_text='Discount granted by the coupon on this order', max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('coupon', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='usages', to='promotions.coupon')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='coupon_usages', to='orders.order')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='coupon_usages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Coupon Usage',
                'verbose_name_plural': 'Coupon Usages',
                'db_table': 'promotion_coupon_usages',
                'indexes': [models.Index(fields=['coupon', 'user'], name='idx_coupon_usage_user')],
                'constraints': [models.UniqueConstraint(fields=('coupon', 'order'), name='unique_coupon_per_order')],
            },
        ),
        migrations.CreateModel(
            name='CampaignUsage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='usages', to='promotions.campaign')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='campaign_usages', to='orders.order')),
            ],
            options={
                'verbose_name': 'Campaign Usage',
                'verbose_name_plural': 'Campaign Usages',
                'db_table': 'promotion_campaign_usages',
                'constraints': [models.UniqueConstraint(fields=('campaign', 'order'), name='unique_campaign_per_order')],
            },
        ),
    ]
