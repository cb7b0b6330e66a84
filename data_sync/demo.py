"""
Demonstration scripts for cross-tab data sync.

These functions open several tabs on one origin and show changes made in
one tab reaching the others. Run them to watch the broadcasts in the log.
"""

import logging

from data_sync.browser import Origin
from data_sync.panels import AdminDashboardPanel, ShopPanel
from storefront.models import CartItem

# Configure logging to see what's happening
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)


def run_cross_tab_demo(supports_broadcast_channel: bool = True):
    """
    Demonstrate a customer checkout reaching an open admin dashboard.

    This shows:
    1. An admin tab and a shop tab open on the same origin
    2. The customer places an order in the shop tab
    3. The admin dashboard refreshes on its own and shows the new stock
    """
    transport = "broadcast channel" if supports_broadcast_channel else "storage envelope"
    print("\n" + "=" * 70)
    print(f"CROSS-TAB DEMO: Checkout seen by the admin ({transport})")
    print("=" * 70 + "\n")

    origin = Origin(supports_broadcast_channel=supports_broadcast_channel)
    admin_tab = origin.open_tab("admin")
    shop_tab = origin.open_tab("shop")

    dashboard = AdminDashboardPanel(admin_tab.sync, admin_tab.data_store).mount()
    shop = ShopPanel(shop_tab.sync, shop_tab.data_store).mount()

    before = next(p for p in dashboard.products if p.id == "p1")
    print(f"Admin sees {before.name}: stock {before.stock}\n")
    print("-" * 70)
    print("ACTION: customer orders 2 x p1 in the shop tab")
    print("-" * 70 + "\n")

    order = shop_tab.ordering.place_order("customer", [CartItem(product_id="p1", quantity=2)])

    after = next(p for p in dashboard.products if p.id == "p1")
    print("\n" + "-" * 70)
    print(f"RESULT: order {order.id.upper()} placed")
    print(f"  Admin dashboard refreshed {dashboard.refresh_count} time(s)")
    print(f"  Admin now sees stock {after.stock}")
    print(f"  Pending orders: {dashboard.overview().pending_orders}")
    print("-" * 70)

    dashboard.unmount()
    shop.unmount()
    origin.close()
    return after.stock


def run_last_writer_wins_demo():
    """
    Demonstrate two tabs overwriting each other's product saves.

    Both tabs read the products collection, change different products and
    save without re-reading. Only the later save survives.
    """
    print("\n" + "=" * 70)
    print("CROSS-TAB DEMO: Last writer wins")
    print("=" * 70 + "\n")

    origin = Origin()
    tab_a = origin.open_tab("tab-a")
    tab_b = origin.open_tab("tab-b")

    products_a = tab_a.data_store.get_products()
    products_b = tab_b.data_store.get_products()

    products_a = [p.model_copy(update={"stock": 0}) if p.id == "p1" else p for p in products_a]
    products_b = [p.model_copy(update={"stock": 99}) if p.id == "p2" else p for p in products_b]

    tab_a.data_store.save_products(products_a)
    tab_a.sync.broadcast_change("inventory", "update")
    tab_b.data_store.save_products(products_b)
    tab_b.sync.broadcast_change("inventory", "update")

    final = {p.id: p.stock for p in tab_a.data_store.get_products()}
    print("tab-a set p1 stock to 0, tab-b set p2 stock to 99")
    print(f"Stored now: p1={final['p1']} (tab-a's change lost), p2={final['p2']}")

    origin.close()
    return final
