"""
Crea (o actualiza) un usuario administrador para el login del panel.

Uso:
  PYTHONPATH=. python scripts/create_admin_user.py --email admin@visitrack.com --name "Admin"

Si no se pasa --password se pide por consola (sin eco).
"""
from __future__ import annotations

import argparse
import getpass
import sys

from app.infrastructure.db.bootstrap import ensure_collections
from app.infrastructure.db.mongo import init_mongo
from app.repositories.auth_repo import upsert_user
from app.services.auth_service import hash_password


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--name", default="Administrator")
    ap.add_argument("--role", default="admin", help="admin | staff")
    ap.add_argument("--password", default=None)
    ap.add_argument("--inactive", action="store_true", help="Crear la cuenta desactivada")
    args = ap.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        print("La contraseña debe tener al menos 8 caracteres.")
        sys.exit(1)

    init_mongo()
    ensure_collections()
    user_id = upsert_user(
        email=args.email,
        password_hash=hash_password(password),
        name=args.name,
        role=args.role,
        is_active=not args.inactive,
    )
    print(f"Usuario listo: {args.email.strip().lower()} (id={user_id}, role={args.role})")


if __name__ == "__main__":
    main()
