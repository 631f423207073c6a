"""
Tests for cart line management and the checkout snapshot
"""

from decimal import Decimal

from django.test import TestCase

from apps.cart.models import CartItem
from apps.cart.services import CartService, CartSnapshotReader
from tests.factories.storefront import create_product, create_user


class CartServiceTestCase(TestCase):
    def setUp(self):
        self.user = create_user()
        self.product = create_product("Mug", price="8.50", stock=5)

    def test_add_merges_lines(self):
        CartService.add_item(self.user, self.product, 2)
        item = CartService.add_item(self.user, self.product, 1).unwrap()

        self.assertEqual(item.quantity, 3)
        self.assertEqual(CartItem.objects.filter(user=self.user).count(), 1)

    def test_add_rejects_more_than_stock(self):
        CartService.add_item(self.user, self.product, 4)

        result = CartService.add_item(self.user, self.product, 2)

        self.assertEqual(result.unwrap_err(), "Insufficient stock")
        self.assertEqual(CartItem.objects.get(user=self.user).quantity, 4)

    def test_add_rejects_inactive_product_and_bad_quantity(self):
        self.assertTrue(CartService.add_item(self.user, self.product, 0).is_err())
        self.product.is_active = False
        self.product.save()
        self.assertTrue(CartService.add_item(self.user, self.product, 1).is_err())

    def test_clear(self):
        CartService.add_item(self.user, self.product, 1)
        CartService.add_item(self.user, create_product("Plate"), 1)

        self.assertEqual(CartService.clear(self.user), 2)
        self.assertTrue(CartSnapshotReader.read(self.user).is_empty)

    def test_remove_purchased_keeps_lines_changed_after_snapshot(self):
        plate = create_product("Plate", price="3.25", stock=5)
        CartService.add_item(self.user, self.product, 2)
        CartService.add_item(self.user, plate, 1)
        snapshot = CartSnapshotReader.read(self.user)
        CartService.add_item(self.user, self.product, 1)
        CartService.add_item(self.user, create_product("Bowl"), 1)

        removed = CartService.remove_purchased(self.user, snapshot)

        self.assertEqual(removed, 1)
        remaining = {item.product.name: item.quantity for item in CartItem.objects.filter(user=self.user)}
        self.assertEqual(remaining, {"Mug": 1, "Bowl": 1})


class CartSnapshotTestCase(TestCase):
    def test_snapshot_uses_live_price_and_stock(self):
        user = create_user()
        mug = create_product("Mug", price="8.50", stock=5)
        plate = create_product("Plate", price="3.25", stock=1)
        CartService.add_item(user, mug, 2)
        CartService.add_item(user, plate, 1)
        mug.price = Decimal("9.00")
        mug.save()
        plate.stock = 0
        plate.save()

        snapshot = CartSnapshotReader.read(user)

        self.assertEqual(snapshot.subtotal, Decimal("21.25"))
        self.assertEqual(snapshot.item_count, 3)
        self.assertEqual([line.has_sufficient_stock for line in snapshot.lines], [True, False])

    def test_other_users_cart_is_separate(self):
        user = create_user()
        CartService.add_item(create_user(), create_product(), 1)

        self.assertTrue(CartSnapshotReader.read(user).is_empty)
