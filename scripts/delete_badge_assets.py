"""Borrador seguro de los assets (Cloudinary) de plantillas de gafete.

Uso típico:
  PYTHONPATH=. python scripts/delete_badge_assets.py --event-id 65f0c0ffee... --yes
  PYTHONPATH=. python scripts/delete_badge_assets.py --template-id 65f1... --template-id 65f2... --yes --delete-docs

Características:
  - Busca en `badgetemplates` por id de plantilla y/o por evento.
  - Usa el `cloudinaryPublicId` guardado; si falta, lo deriva de `cloudinaryUrl`.
  - Referencias sin id derivable se omiten (nunca se borra con id vacío).
  - Dry‑run por defecto (muestra qué se borraría). Confirma con --yes.
"""
from __future__ import annotations

import argparse
from typing import Any, Dict, List

from app.api.deps import get_asset_store
from app.core.exceptions import AppError
from app.infrastructure.db.mongo import init_mongo
from app.repositories import badge_template_repo
from app.services.asset_reference import extract_public_id


def plan_deletions(templates: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Aplana las plantillas en filas {template_id, field, url, public_id} (public_id puede quedar vacío)."""
    rows: List[Dict[str, str]] = []
    for t in templates:
        for ref in badge_template_repo.asset_refs(t):
            pid = ref["public_id"] or extract_public_id(ref["url"])
            rows.append({"template_id": t["id"], "field": ref["field"], "url": ref["url"], "public_id": pid})
    return rows


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--template-id", action="append", default=[], help="Id de plantilla (se puede repetir)")
    ap.add_argument("--event-id", default=None, help="Todas las plantillas del evento")
    ap.add_argument("--delete-docs", action="store_true", help="Borrar también los documentos de plantilla")
    ap.add_argument("--yes", action="store_true", help="Confirmar y ejecutar (por defecto es dry-run)")
    args = ap.parse_args()

    if not args.template_id and not args.event_id:
        ap.error("indica --template-id y/o --event-id")

    init_mongo()
    templates = badge_template_repo.find_templates(template_ids=args.template_id, event_id=args.event_id)
    rows = plan_deletions(templates)

    print(f"Plantillas encontradas: {len(templates)}")
    for r in rows:
        pid = r["public_id"] or "(sin public_id derivable)"
        print(f"  - {r['template_id']} | {r['field']} | {pid}")

    if not args.yes:
        print("\nDry‑run. Añade --yes para ejecutar. Usa --delete-docs para borrar las plantillas.")
        return

    print("\nEjecutando eliminaciones…")
    store = get_asset_store()
    failed = 0
    for r in rows:
        if not r["public_id"]:
            print(f"  Omitido {r['template_id']}/{r['field']}: URL no reconocida")
            continue
        try:
            outcome = store.delete(r["public_id"])
        except AppError as e:
            failed += 1
            print(f"  ERROR {r['public_id']}: {e.message}")
            continue
        print(f"  {r['public_id']}: {outcome.result}")

    if args.delete_docs and failed:
        print("  Hubo errores en storage; no se borran las plantillas (sus URLs serían la única referencia).")
    elif args.delete_docs:
        for t in templates:
            ok = badge_template_repo.delete_template(t["id"])
            print(f"  Plantilla {t['id']} eliminada={ok}")

    print(f"\nListo. Fallidos: {failed}")


if __name__ == "__main__":
    main()
