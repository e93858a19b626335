"""SQLite storage for receipts, items and claims.

The store owns the cross-claim invariants the engine doesn't enforce: one
claim per (item, member), and claim replacement as delete + recreate.
"""

import logging
import sqlite3
import uuid
from datetime import date, datetime
from pathlib import Path

from pydantic import ValidationError

from .exceptions import DuplicateClaimError, RecordNotFoundError, SnapshotFormatError
from .models import (
    ItemClaim,
    Member,
    MemberTotal,
    Receipt,
    ReceiptItem,
    ReceiptSnapshot,
    ReceiptStatus,
)

logger = logging.getLogger(__name__)


def load_snapshot(path: Path) -> ReceiptSnapshot:
    """
    Read a receipt snapshot from a JSON file.

    Expected shape: {"receipt": {...}, "items": [...], "members": [...],
    "claims": [...]} with the same field names as the models.

    Raises:
        SnapshotFormatError: If the file can't be read or doesn't validate
    """
    try:
        return ReceiptSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SnapshotFormatError(f"Cannot read snapshot {path}: {e}") from e
    except ValidationError as e:
        raise SnapshotFormatError(f"Invalid snapshot {path}:\n{e}") from e


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                group_id TEXT,
                user_id TEXT
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS receipts (
                id TEXT PRIMARY KEY,
                group_id TEXT,
                merchant_name TEXT,
                receipt_date DATE,
                currency TEXT NOT NULL DEFAULT 'USD',
                subtotal REAL,
                tax_amount REAL,
                tip_amount REAL,
                total_amount REAL,
                status TEXT NOT NULL DEFAULT 'draft'
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS receipt_items (
                id TEXT PRIMARY KEY,
                receipt_id TEXT NOT NULL REFERENCES receipts(id) ON DELETE CASCADE,
                description TEXT NOT NULL DEFAULT '',
                quantity INTEGER NOT NULL DEFAULT 1,
                unit_price REAL,
                total_price REAL NOT NULL,
                is_tax INTEGER NOT NULL DEFAULT 0,
                is_tip INTEGER NOT NULL DEFAULT 0,
                is_subtotal INTEGER NOT NULL DEFAULT 0,
                is_total INTEGER NOT NULL DEFAULT 0,
                is_discount INTEGER NOT NULL DEFAULT 0
            )
        """
        )

        # One claim per member per item
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS item_claims (
                id TEXT PRIMARY KEY,
                receipt_item_id TEXT NOT NULL
                    REFERENCES receipt_items(id) ON DELETE CASCADE,
                member_id TEXT NOT NULL,
                claim_type TEXT NOT NULL DEFAULT 'full',
                share_fraction REAL NOT NULL DEFAULT 1.0,
                split_count INTEGER NOT NULL DEFAULT 1,
                claimed_at TIMESTAMP NOT NULL,
                claimed_via TEXT NOT NULL DEFAULT 'app',
                UNIQUE(receipt_item_id, member_id)
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS receipt_member_totals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                receipt_id TEXT NOT NULL REFERENCES receipts(id) ON DELETE CASCADE,
                member_id TEXT NOT NULL,
                member_name TEXT NOT NULL,
                items_total REAL NOT NULL DEFAULT 0,
                tax_share REAL NOT NULL DEFAULT 0,
                tip_share REAL NOT NULL DEFAULT 0,
                grand_total REAL NOT NULL DEFAULT 0,
                UNIQUE(receipt_id, member_id)
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Member operations
    # ========================================================================

    def save_member(self, member: Member):
        """Insert or update a member."""
        with self.conn:
            self._upsert_member(member)

    def _upsert_member(self, member: Member):
        self.conn.execute(
            """
            INSERT INTO members (id, name, group_id, user_id)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                group_id = excluded.group_id,
                user_id = excluded.user_id
            """,
            (member.id, member.name, member.group_id, member.user_id),
        )

    def list_members(self, group_id: str | None = None) -> list[Member]:
        """List members, optionally restricted to one group."""
        cursor = self.conn.cursor()
        if group_id is None:
            cursor.execute("SELECT * FROM members ORDER BY rowid")
        else:
            cursor.execute(
                "SELECT * FROM members WHERE group_id = ? ORDER BY rowid", (group_id,)
            )
        return [self._row_to_member(row) for row in cursor.fetchall()]

    # ========================================================================
    # Receipt operations
    # ========================================================================

    def save_receipt(self, receipt: Receipt):
        """Insert or update a receipt."""
        with self.conn:
            self._upsert_receipt(receipt)

    def _upsert_receipt(self, receipt: Receipt):
        self.conn.execute(
            """
            INSERT INTO receipts (
                id, group_id, merchant_name, receipt_date, currency,
                subtotal, tax_amount, tip_amount, total_amount, status
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                group_id = excluded.group_id,
                merchant_name = excluded.merchant_name,
                receipt_date = excluded.receipt_date,
                currency = excluded.currency,
                subtotal = excluded.subtotal,
                tax_amount = excluded.tax_amount,
                tip_amount = excluded.tip_amount,
                total_amount = excluded.total_amount,
                status = excluded.status
            """,
            (
                receipt.id,
                receipt.group_id,
                receipt.merchant_name,
                receipt.receipt_date.isoformat() if receipt.receipt_date else None,
                receipt.currency,
                receipt.subtotal,
                receipt.tax_amount,
                receipt.tip_amount,
                receipt.total_amount,
                receipt.status,
            ),
        )

    def get_receipt(self, receipt_id: str) -> Receipt:
        """Get a receipt by ID."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM receipts WHERE id = ?", (receipt_id,))
        row = cursor.fetchone()
        if not row:
            raise RecordNotFoundError("Receipt", receipt_id)

        return Receipt(
            id=row["id"],
            group_id=row["group_id"],
            merchant_name=row["merchant_name"],
            receipt_date=(
                date.fromisoformat(row["receipt_date"]) if row["receipt_date"] else None
            ),
            currency=row["currency"],
            subtotal=row["subtotal"],
            tax_amount=row["tax_amount"],
            tip_amount=row["tip_amount"],
            total_amount=row["total_amount"],
            status=row["status"],
        )

    def update_receipt_status(self, receipt_id: str, status: ReceiptStatus):
        """Set a receipt's status."""
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE receipts SET status = ? WHERE id = ?", (status, receipt_id)
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError("Receipt", receipt_id)

    # ========================================================================
    # Receipt item operations
    # ========================================================================

    def save_item(self, item: ReceiptItem):
        """Insert or update a receipt item. Its claims are not written."""
        with self.conn:
            self._upsert_item(item)

    def _upsert_item(self, item: ReceiptItem):
        if item.receipt_id is None:
            raise ValueError(f"Item {item.id} has no receipt_id")

        self.conn.execute(
            """
            INSERT INTO receipt_items (
                id, receipt_id, description, quantity, unit_price, total_price,
                is_tax, is_tip, is_subtotal, is_total, is_discount
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                receipt_id = excluded.receipt_id,
                description = excluded.description,
                quantity = excluded.quantity,
                unit_price = excluded.unit_price,
                total_price = excluded.total_price,
                is_tax = excluded.is_tax,
                is_tip = excluded.is_tip,
                is_subtotal = excluded.is_subtotal,
                is_total = excluded.is_total,
                is_discount = excluded.is_discount
            """,
            (
                item.id,
                item.receipt_id,
                item.description,
                item.quantity,
                item.unit_price,
                item.total_price,
                item.is_tax,
                item.is_tip,
                item.is_subtotal,
                item.is_total,
                item.is_discount,
            ),
        )

    def get_item(self, item_id: str) -> ReceiptItem:
        """Get a fresh snapshot of an item with its claims attached."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM receipt_items WHERE id = ?", (item_id,))
        row = cursor.fetchone()
        if not row:
            raise RecordNotFoundError("Receipt item", item_id)

        claims = self._fetch_claims("c.receipt_item_id = ?", (item_id,))
        return self._row_to_item(row, claims)

    def list_items(self, receipt_id: str) -> list[ReceiptItem]:
        """List a receipt's items in receipt order, with claims attached."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT * FROM receipt_items WHERE receipt_id = ? ORDER BY rowid",
            (receipt_id,),
        )
        rows = cursor.fetchall()

        claims_by_item: dict[str, list[ItemClaim]] = {}
        for claim in self.list_claims(receipt_id):
            claims_by_item.setdefault(claim.receipt_item_id, []).append(claim)

        return [self._row_to_item(row, claims_by_item.get(row["id"], [])) for row in rows]

    # ========================================================================
    # Claim operations
    # ========================================================================

    def insert_claim(self, claim: ItemClaim) -> ItemClaim:
        """
        Persist a new claim, assigning its ID and timestamp.

        Raises:
            DuplicateClaimError: If the member already has a claim on the item
        """
        with self.conn:
            saved = self._insert_claim(claim)
        logger.info(
            f"Saved claim {saved.id}: {saved.member_id} -> {saved.receipt_item_id} "
            f"({saved.share_fraction:.4f})"
        )
        return saved

    def replace_claim(self, claim: ItemClaim) -> ItemClaim:
        """Delete the member's existing claim on the item and insert this one."""
        with self.conn:
            self.conn.execute(
                "DELETE FROM item_claims WHERE receipt_item_id = ? AND member_id = ?",
                (claim.receipt_item_id, claim.member_id),
            )
            saved = self._insert_claim(claim)
        logger.info(
            f"Replaced claim for {saved.member_id} on {saved.receipt_item_id} "
            f"({saved.share_fraction:.4f})"
        )
        return saved

    def replace_item_claims(
        self, item_id: str, claims: list[ItemClaim]
    ) -> list[ItemClaim]:
        """Swap every claim on an item for the given ones in one transaction."""
        with self.conn:
            self.conn.execute(
                "DELETE FROM item_claims WHERE receipt_item_id = ?", (item_id,)
            )
            saved = [self._insert_claim(claim) for claim in claims]
        logger.info(f"Replaced claims on {item_id} with {len(saved)} claim(s)")
        return saved

    def _insert_claim(self, claim: ItemClaim) -> ItemClaim:
        saved = claim.model_copy(
            update={
                "id": claim.id or uuid.uuid4().hex,
                "claimed_at": claim.claimed_at or datetime.now(),
            }
        )
        try:
            self.conn.execute(
                """
                INSERT INTO item_claims (
                    id, receipt_item_id, member_id, claim_type, share_fraction,
                    split_count, claimed_at, claimed_via
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    saved.id,
                    saved.receipt_item_id,
                    saved.member_id,
                    saved.claim_type,
                    saved.share_fraction,
                    saved.split_count,
                    saved.claimed_at.isoformat(),
                    saved.claimed_via,
                ),
            )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateClaimError(claim.receipt_item_id, claim.member_id) from e
            raise
        return saved

    def delete_claim(self, item_id: str, member_id: str) -> bool:
        """Delete a member's claim on an item. Returns False if there was none."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM item_claims WHERE receipt_item_id = ? AND member_id = ?",
            (item_id, member_id),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def delete_item_claims(self, item_id: str) -> int:
        """Delete every claim on an item. Returns the number removed."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM item_claims WHERE receipt_item_id = ?", (item_id,))
        self.conn.commit()
        return cursor.rowcount

    def list_claims(self, receipt_id: str) -> list[ItemClaim]:
        """List all claims on a receipt's items, oldest first."""
        return self._fetch_claims("i.receipt_id = ?", (receipt_id,))

    def _fetch_claims(self, where: str, params: tuple) -> list[ItemClaim]:
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            SELECT c.*, m.name AS member_name, m.group_id AS member_group_id,
                   m.user_id AS member_user_id
            FROM item_claims c
            JOIN receipt_items i ON i.id = c.receipt_item_id
            LEFT JOIN members m ON m.id = c.member_id
            WHERE {where}
            ORDER BY c.claimed_at, c.rowid
            """,
            params,
        )
        return [self._row_to_claim(row) for row in cursor.fetchall()]

    # ========================================================================
    # Member totals operations
    # ========================================================================

    def save_member_totals(self, receipt_id: str, totals: list[MemberTotal]):
        """Replace the stored member totals for a receipt."""
        with self.conn:
            self.conn.execute(
                "DELETE FROM receipt_member_totals WHERE receipt_id = ?", (receipt_id,)
            )
            self.conn.executemany(
                """
                INSERT INTO receipt_member_totals (
                    receipt_id, member_id, member_name, items_total,
                    tax_share, tip_share, grand_total
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        receipt_id,
                        total.member_id,
                        total.member_name,
                        total.items_total,
                        total.tax_share,
                        total.tip_share,
                        total.grand_total,
                    )
                    for total in totals
                ],
            )

    def list_member_totals(self, receipt_id: str) -> list[MemberTotal]:
        """Stored member totals for a receipt (without item breakdown)."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT member_id, member_name, items_total, tax_share, tip_share,
                   grand_total
            FROM receipt_member_totals
            WHERE receipt_id = ?
            ORDER BY id
            """,
            (receipt_id,),
        )
        return [
            MemberTotal(
                member_id=row["member_id"],
                member_name=row["member_name"],
                items_total=row["items_total"],
                tax_share=row["tax_share"],
                tip_share=row["tip_share"],
                grand_total=row["grand_total"],
            )
            for row in cursor.fetchall()
        ]

    # ========================================================================
    # Snapshot import
    # ========================================================================

    def import_snapshot(self, snapshot: ReceiptSnapshot) -> Receipt:
        """
        Store a receipt with its members, items and claims in one transaction.

        The snapshot's claims replace any stored claims on the receipt, so
        importing the same snapshot again is safe. Nothing is written if any
        part of the import fails.

        Raises:
            DuplicateClaimError: If the snapshot holds two claims by the same
                member on the same item
        """
        receipt = snapshot.receipt

        claims = list(snapshot.claims)
        with self.conn:
            self._upsert_receipt(receipt)

            for member in snapshot.members:
                if member.group_id is None:
                    member = member.model_copy(update={"group_id": receipt.group_id})
                self._upsert_member(member)

            for item in snapshot.items:
                if item.receipt_id is None:
                    item = item.model_copy(update={"receipt_id": receipt.id})
                self._upsert_item(item)
                claims.extend(item.claim_list)

            self.conn.execute(
                """
                DELETE FROM item_claims WHERE receipt_item_id IN (
                    SELECT id FROM receipt_items WHERE receipt_id = ?
                )
                """,
                (receipt.id,),
            )
            for claim in claims:
                self._insert_claim(claim)

        logger.info(
            f"Imported receipt {receipt.id}: {len(snapshot.items)} items, "
            f"{len(claims)} claims, {len(snapshot.members)} members"
        )
        return receipt

    # ========================================================================
    # Row mapping
    # ========================================================================

    @staticmethod
    def _row_to_member(row: sqlite3.Row) -> Member:
        return Member(
            id=row["id"],
            name=row["name"],
            group_id=row["group_id"],
            user_id=row["user_id"],
        )

    @staticmethod
    def _row_to_item(row: sqlite3.Row, claims: list[ItemClaim]) -> ReceiptItem:
        return ReceiptItem(
            id=row["id"],
            receipt_id=row["receipt_id"],
            description=row["description"],
            quantity=row["quantity"],
            unit_price=row["unit_price"],
            total_price=row["total_price"],
            is_tax=bool(row["is_tax"]),
            is_tip=bool(row["is_tip"]),
            is_subtotal=bool(row["is_subtotal"]),
            is_total=bool(row["is_total"]),
            is_discount=bool(row["is_discount"]),
            claims=claims,
        )

    @staticmethod
    def _row_to_claim(row: sqlite3.Row) -> ItemClaim:
        member = None
        if row["member_name"] is not None:
            member = Member(
                id=row["member_id"],
                name=row["member_name"],
                group_id=row["member_group_id"],
                user_id=row["member_user_id"],
            )

        return ItemClaim(
            id=row["id"],
            receipt_item_id=row["receipt_item_id"],
            member_id=row["member_id"],
            claim_type=row["claim_type"],
            share_fraction=row["share_fraction"],
            split_count=row["split_count"],
            claimed_at=datetime.fromisoformat(row["claimed_at"]),
            claimed_via=row["claimed_via"],
            member=member,
        )
