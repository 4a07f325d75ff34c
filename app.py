from __future__ import annotations

import json

import streamlit as st

from stock_intake.catalog import get_catalog_client
from stock_intake.config import get_settings
from stock_intake.errors import MissingSalePriceError
from stock_intake.models import CategoryTag, ReviewItem, ScannedInvoice, UnitOfMeasure
from stock_intake.pipeline import commit_review, prepare_review
from stock_intake.units import needs_volume


def _rows_for_editor(items: list[ReviewItem]) -> list[dict]:
    rows = []
    for it in items:
        existing = it.existing_product
        rows.append(
            {
                "selected": it.selected,
                "code": it.code,
                "description": it.description,
                "category": it.category.value,
                "unit": it.unit.value,
                "volume_per_unit": it.volume_per_unit,
                "quantity": it.quantity,
                "purchase_price": it.purchase_price,
                "sale_price": it.sale_price,
                "existing": f"{existing.name} ({existing.quantity_on_hand:g} {existing.unit_of_measure.value})"
                if existing
                else "",
                "update_existing": it.update_existing,
            }
        )
    return rows


def _apply_edits(items: list[ReviewItem], rows: list[dict]) -> list[ReviewItem]:
    edited = []
    for it, row in zip(items, rows, strict=False):
        volume = row.get("volume_per_unit")
        unit = UnitOfMeasure(row["unit"])
        edited.append(
            it.model_copy(
                update={
                    "selected": bool(row["selected"]),
                    "code": row["code"],
                    "description": row["description"],
                    "category": CategoryTag(row["category"]),
                    "unit": unit,
                    "volume_per_unit": volume or None,
                    "missing_volume": needs_volume(volume, unit),
                    "quantity": row["quantity"] or 1,
                    "purchase_price": row["purchase_price"] or 0.0,
                    "sale_price": row["sale_price"] or 0.0,
                    "update_existing": bool(row["update_existing"]) and it.existing_product is not None,
                }
            )
        )
    return edited


st.set_page_config(
    page_title="Entrada de NF no Estoque",
    page_icon="🧾",
    layout="wide",
)

st.title("Itens da Nota Fiscal")
st.caption("Upload the invoice scan JSON → review detected categories and duplicates → save to stock.")

catalog = get_catalog_client()

with st.sidebar:
    st.header("Settings")
    settings = get_settings()
    if catalog is not None:
        st.success(f"Stock API: {settings.api_url}")
    else:
        st.warning("No `STOCK_API_URL` set. Items cannot be matched against or saved to stock.")
    st.write(f"Match threshold: **{settings.match_threshold:.0%}**")
    num_workers = st.slider("Parallel lookups", min_value=1, max_value=8, value=4)

upload = st.file_uploader("Upload an invoice scan (JSON)", type=["json"])

col_a, col_b = st.columns([1, 3])
with col_a:
    run_btn = st.button("Prepare review", type="primary", disabled=upload is None)
with col_b:
    clear_btn = st.button("Clear")

if clear_btn:
    st.session_state.pop("review", None)
    st.rerun()

if run_btn and upload is not None:
    try:
        invoice = ScannedInvoice.model_validate(json.loads(upload.getvalue()))
    except ValueError as e:
        st.error(f"Invalid scan file: {e}")
        st.stop()
    if invoice.error:
        st.error(invoice.error)
    elif not invoice.items:
        st.warning("Nenhum item encontrado na nota fiscal")
    with st.spinner(f"Checking {len(invoice.items)} item(s) against stock…"):
        items = prepare_review(invoice, catalog, max_workers=num_workers)
    st.session_state["review"] = {
        "invoice": invoice.model_dump(mode="json"),
        "items": [it.model_dump(mode="json") for it in items],
    }

review = st.session_state.get("review")
if not review or not review["items"]:
    st.info("Upload a scan and click **Prepare review**.")
    st.stop()

invoice = ScannedInvoice.model_validate(review["invoice"])
items = [ReviewItem.model_validate(x) for x in review["items"]]

c1, c2, c3, c4 = st.columns(4)
c1.metric("Fornecedor", invoice.supplier_name or "—")
c2.metric("NF", invoice.invoice_number or "—")
c3.metric("Items", len(items))
c4.metric("Already in stock", sum(1 for it in items if it.existing_product is not None))

edited_rows = st.data_editor(
    _rows_for_editor(items),
    use_container_width=True,
    hide_index=True,
    disabled=["existing"],
    column_config={
        "category": st.column_config.SelectboxColumn("Categoria", options=[t.value for t in CategoryTag]),
        "unit": st.column_config.SelectboxColumn("Unidade", options=[u.value for u in UnitOfMeasure]),
        "sale_price": st.column_config.NumberColumn("Preço Venda", min_value=0.0, format="%.2f"),
        "update_existing": st.column_config.CheckboxColumn("Atualizar qtd"),
    },
    key="review_editor",
)
items = _apply_edits(items, edited_rows)

missing_volume = [it for it in items if it.selected and it.missing_volume]
if missing_volume:
    st.caption(f"{len(missing_volume)} item(s) without a package volume.")

if st.button("Save to stock", type="primary", disabled=catalog is None):
    try:
        summary = commit_review(items, catalog, supplier_name=invoice.supplier_name)
    except MissingSalePriceError as e:
        st.error(str(e))
    else:
        st.session_state.pop("review", None)
        if summary.failed:
            st.warning(summary.message)
        else:
            st.success(summary.message + " com sucesso!")
