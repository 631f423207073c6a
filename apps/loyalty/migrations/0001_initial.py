# Generated migration for rewards, redemptions and the points ledger

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
            name='Reward',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('type', models.CharField(choices=[('DISCOUNT', 'Discount'), ('FREE_DELIVERY', 'Free Delivery'), ('CASHBACK', 'Cashback'), ('FREE_PRODUCT', 'Free Product')], max_length=20)),
                ('value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Discount amount, or points credited for CASHBACK', max_digits=12)),
                ('points_cost', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Reward',
                'verbose_name_plural': 'Rewards',
                'db_table': 'loyalty_rewards',
                'ordering': ('points_cost',),
            },
        ),
        migrations.CreateModel(
            name='RedeemedReward',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('PENDING', 'Pending Review'), ('APPROVED', 'Approved'), ('USED', 'Used'), ('REJECTED', 'Rejected')], default='PENDING', max_length=20)),
                ('redeemed_at', models.DateTimeField(auto_now_add=True)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('used_at', models.DateTimeField(blank=True, null=True)),
                ('reward', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='redemptions', to='loyalty.reward')),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_redemptions', to=settings.AUTH_USER_MODEL)),
                ('used_on_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='used_rewards', to='orders.order')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='redeemed_rewards', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Redeemed Reward',
                'verbose_name_plural': 'Redeemed Rewards',
                'db_table': 'loyalty_redeemed_rewards',
                'ordering': ('redeemed_at',),
                'indexes': [models.Index(fields=['user', 'status'], name='idx_redeemed_user_status')],
            },
        ),
        migrations.CreateModel(
            name='PointsTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.IntegerField(help_text='Signed points delta')),
                ('type', models.CharField(choices=[('PURCHASE', 'Purchase'), ('REDEMPTION', 'Redemption'), ('REWARD_CREDIT', 'Reward Credit'), ('REFERRAL_BONUS', 'Referral Bonus'), ('PROMOTION_BONUS', 'Promotion Bonus')], max_length=20)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('reference_id', models.CharField(blank=True, help_text='Order, redemption or user id', max_length=64)),
                ('balance_after', models.IntegerField()),
                ('idempotency_key', models.CharField(blank=True, max_length=160, null=True, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='points_transactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Points Transaction',
                'verbose_name_plural': 'Points Transactions',
                'db_table': 'loyalty_points_transactions',
                'ordering': ('-created_at',),
                'indexes': [models.Index(fields=['user', '-created_at'], name='idx_points_tx_user_created'), models.Index(fields=['user', 'type', 'reference_id'], name='idx_points_tx_reference')],
            },
        ),
    ]
