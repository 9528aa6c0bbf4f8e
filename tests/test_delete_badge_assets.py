from scripts.delete_badge_assets import plan_deletions


def test_plan_prefers_stored_id_and_derives_missing_ones():
    templates = [
        {
            "id": "t1",
            "badge": {
                "cloudinaryUrl": "https://res.cloudinary.com/demo/image/upload/v1/badge-templates/b1.png",
                "cloudinaryPublicId": "badge-templates/b1",
            },
            "logo": {"cloudinaryUrl": "https://res.cloudinary.com/demo/image/upload/v2/badge-templates/l1.jpg"},
            "photo": {"cloudinaryUrl": "https://cdn.example.org/photo.jpg"},
            "qrCode": {},
            "background": None,
        }
    ]
    rows = plan_deletions(templates)
    assert [(r["field"], r["public_id"]) for r in rows] == [
        ("badge", "badge-templates/b1"),
        ("logo", "badge-templates/l1"),
        ("photo", ""),
    ]
    assert all(r["template_id"] == "t1" for r in rows)


def test_plan_for_template_without_assets_is_empty():
    assert plan_deletions([{"id": "t2", "name": "vacía"}]) == []
