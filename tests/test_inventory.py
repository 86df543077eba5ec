import pytest

from academy.errors import ResolutionError, ValidationError
from academy.services.inventory import add_material, add_stock, delete_material, inventory_summary, update_material


class TestMaterials:
    def test_add_creates_matching_pair(self, store):
        mid = add_material(store, name="Bare Acts Compilation", price=450, initial_stock=25)

        assert store.get("materials", mid) == {"id": mid, "name": "Bare Acts Compilation", "price": 450}
        assert store.get("inventory", mid) == {
            "id": mid,
            "title": "Bare Acts Compilation",
            "totalStock": 25,
            "availableStock": 25,
        }

    def test_add_defaults_to_zero_stock(self, store):
        mid = add_material(store, name="Notes B", price=100)
        assert store.get("inventory", mid)["totalStock"] == 0

    def test_add_rejects_bad_input_without_writing(self, store):
        with pytest.raises(ValidationError) as exc:
            add_material(store, name="", price=-1, initial_stock=-3)

        assert set(exc.value.errors) == {"name", "price"}
        assert store.count("materials") == 0
        assert store.count("inventory") == 0

    def test_update_renames_and_tops_up(self, store, material_id):
        update_material(store, material_id, name="Notes A (2nd ed.)", price=175, stock_delta=10)

        assert store.get("materials", material_id)["price"] == 175
        item = store.get("inventory", material_id)
        assert item["title"] == "Notes A (2nd ed.)"
        assert item["totalStock"] == 50
        assert item["availableStock"] == 50

    def test_update_recreates_missing_inventory_item(self, store, material_id):
        store.delete("inventory", material_id)

        update_material(store, material_id, name="Notes A", price=150, stock_delta=3)

        assert store.get("inventory", material_id) == {
            "id": material_id,
            "title": "Notes A",
            "totalStock": 3,
            "availableStock": 3,
        }

    def test_update_missing_material(self, store):
        with pytest.raises(ResolutionError):
            update_material(store, "gone", name="Notes B", price=1)
        assert store.get("inventory", "gone") is None

    def test_delete_removes_both(self, store, material_id):
        delete_material(store, material_id)

        assert store.get("materials", material_id) is None
        assert store.get("inventory", material_id) is None


class TestAddStock:
    def test_adds_to_both_counts(self, store, material_id):
        add_stock(store, material_id, 5)

        item = store.get("inventory", material_id)
        assert (item["totalStock"], item["availableStock"]) == (45, 45)

    @pytest.mark.parametrize("qty", [0, -2, 2.5])
    def test_rejects_non_positive_or_fractional(self, store, material_id, qty):
        with pytest.raises(ValidationError):
            add_stock(store, material_id, qty)
        assert store.get("inventory", material_id)["totalStock"] == 40

    def test_missing_item(self, store):
        with pytest.raises(ResolutionError):
            add_stock(store, "gone", 1)


def test_inventory_summary_flags_drift():
    materials = [
        {"id": "a", "name": "Notes A", "price": 150},
        {"id": "b", "name": "Bare Acts", "price": 450},
    ]
    inventory = [
        {"id": "a", "title": "Notes A", "totalStock": 40, "availableStock": 38},
        {"id": "z", "title": "Stray", "totalStock": 1, "availableStock": 1},
    ]

    rows = {r["id"]: r for r in inventory_summary(materials, inventory)}

    assert rows["a"]["in_sync"] is True
    assert rows["a"]["available_stock"] == 38
    assert rows["b"]["in_sync"] is False
    assert rows["b"]["total_stock"] == 0
    assert rows["z"]["price"] is None
    assert rows["z"]["in_sync"] is False
