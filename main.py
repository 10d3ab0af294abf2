#!/usr/bin/env python3
"""
Purchase bill client: CLI entry point.

Usage examples:
  python main.py check                              # Verify the API is reachable
  python main.py bills list                         # List all purchase bills
  python main.py bills show 42                      # Show one bill with its lines
  python main.py bills create bill.json             # Compose and submit a bill
  python main.py grn item 42 317                    # Toggle receipt of line 317 on bill 42
  python main.py grn hardcopy 42 purchaser          # Toggle a hardcopy flag
  python main.py price 5 9 kg 2024-01-10            # Resolve the active price
  python main.py masterdata list suppliers          # List a master-data resource
"""
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from config import Config
from billing import (
    BillAggregateStore,
    BillComposer,
    BillingError,
    GrnUpdateWorkflow,
    HardcopyFlag,
    MasterDataDirectory,
    PriceLookupClient,
    PriceLookupKey,
    PurchaseApiClient,
)
from models.purchase_bill import PurchaseBill


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _run(coro):
    """Run a coroutine; workflow errors become a one-line message and exit 1."""
    try:
        return asyncio.run(coro)
    except BillingError as exc:
        click.echo(f"✗ {exc}", err=True)
        for detail in getattr(exc, "validation_errors", []) or []:
            click.echo(f"   - {detail}", err=True)
        sys.exit(1)


def _echo_bill(bill: PurchaseBill) -> None:
    click.echo()
    click.echo(f"  Bill:        {bill.bill_number}  (id {bill.id})")
    click.echo(f"  Date:        {bill.bill_date}")
    click.echo(f"  Supplier:    {bill.supplier.name}")
    click.echo(f"  Site:        {bill.site.name}")
    click.echo(f"  Total:       {bill.total_amount:.2f}")
    click.echo(f"  GRN status:  {bill.overall_grn_status}")
    click.echo(f"  Hardcopy:    received by purchaser {'✓' if bill.grn_hardcopy_received_by_purchaser else '✗'}"
               f"   handed to accountant {'✓' if bill.grn_hardcopy_handed_to_accountant else '✗'}")
    click.echo()
    if not bill.bill_items:
        click.echo("  (no lines)")
    for line in bill.bill_items:
        tick = "✓" if line.grn_received_for_item else " "
        click.echo(
            f"  [{tick}] #{line.id:<6} {line.master_material_name:<30} "
            f"{line.quantity} {line.unit} @ {line.unit_price:.2f} = {line.item_total_price:.2f}"
            + (f"  ({line.remarks})" if line.remarks else "")
        )
    click.echo()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--api-url", default=None, help="API base URL (default: API_BASE_URL env var)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, api_url: Optional[str]) -> None:
    """Purchase bill client: compose bills and track goods receipt."""
    ctx.ensure_object(dict)
    config = Config()
    if api_url:
        config.api_base_url = api_url.rstrip("/")
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Verify that the API answers on every endpoint this client uses."""
    config: Config = ctx.obj["config"]

    async def check_endpoints() -> list[tuple[str, bool, str]]:
        results = []
        async with PurchaseApiClient.from_config(config) as api:
            try:
                bills = await api.list_purchase_bills()
                results.append(("purchase-bills", True, f"{len(bills)} loaded"))
            except BillingError as exc:
                results.append(("purchase-bills", False, str(exc)))
            for resource in MasterDataDirectory.RESOURCES.values():
                try:
                    rows = await api.list_resource(resource)
                    results.append((resource, True, f"{len(rows)} loaded"))
                except BillingError as exc:
                    results.append((resource, False, str(exc)))
        return results

    click.echo("\n=== API Check ===\n")
    click.echo(f"  Endpoint:  {config.api_base_url}\n")
    results = _run(check_endpoints())
    for name, ok, detail in results:
        tick = "✓" if ok else "✗"
        click.echo(f"  {name:<20} {tick}  {detail}")
    click.echo()
    if not all(ok for _, ok, _ in results):
        sys.exit(1)


# --------------------------------------------------------------------
# bills commands
# --------------------------------------------------------------------

@cli.group()
def bills() -> None:
    """List, show and create purchase bills."""


@bills.command("list")
@click.pass_context
def bills_list(ctx: click.Context) -> None:
    """List all purchase bills."""
    config: Config = ctx.obj["config"]

    async def load():
        async with PurchaseApiClient.from_config(config) as api:
            store = BillAggregateStore(api)
            await store.fetch_bills()
            return store

    store = _run(load())
    if store.list_view.error:
        click.echo(f"✗ Could not load purchase bills: {store.list_view.error}", err=True)
        sys.exit(1)
    click.echo()
    for bill in store.bills:
        click.echo(
            f"  {bill.id:<6} {bill.bill_number:<16} {bill.bill_date}  "
            f"{bill.supplier.name:<28} {bill.total_amount:>12.2f}  {bill.overall_grn_status}"
        )
    click.echo(f"\n  {len(store.bills)} bills.\n")


@bills.command("show")
@click.argument("bill_id", type=int)
@click.pass_context
def bills_show(ctx: click.Context, bill_id: int) -> None:
    """Show one purchase bill with its lines and GRN state."""
    config: Config = ctx.obj["config"]

    async def load():
        async with PurchaseApiClient.from_config(config) as api:
            store = BillAggregateStore(api)
            await store.fetch_bill(bill_id)
            return store

    store = _run(load())
    if store.selected_bill is None:
        click.echo(f"✗ Could not load purchase bill {bill_id}: {store.selected.error}", err=True)
        sys.exit(1)
    _echo_bill(store.selected_bill)


@bills.command("create")
@click.argument("bill_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def bills_create(ctx: click.Context, bill_file: str) -> None:
    """
    Compose a purchase bill from a JSON file and submit it.

    \b
    File format:
      {"billNumber": "B-100", "billDate": "2024-01-10", "supplierId": 5, "siteId": 2,
       "items": [{"masterMaterialId": 9, "quantity": 10, "unit": "kg", "unitPrice": 2.5}]}

    \b
    unit defaults to the material's default unit. unitPrice is optional when
    the supplier has an active price for the material on the bill date; when
    given it overrides the active price.
    """
    config: Config = ctx.obj["config"]
    entry = json.loads(Path(bill_file).read_text(encoding="utf-8"))

    async def compose() -> PurchaseBill:
        async with PurchaseApiClient.from_config(config) as api:
            directory = MasterDataDirectory(api)
            await directory.master_materials.list()
            composer = BillComposer(api, BillAggregateStore(api), lookup_delay=config.price_lookup_delay)
            composer.set_header(
                bill_number=entry.get("billNumber"),
                bill_date=entry.get("billDate"),
                supplier_id=entry.get("supplierId"),
                site_id=entry.get("siteId"),
            )
            for position, item in enumerate(entry.get("items") or [], start=1):
                material = directory.master_materials.get(item.get("masterMaterialId"))
                default_unit = material.default_unit if material else ""
                composer.select_material(item.get("masterMaterialId"), default_unit)
                if item.get("unit"):
                    composer.set_unit(item["unit"])
                composer.set_quantity(item.get("quantity"))
                result = await composer.wait_for_price()

                if item.get("unitPrice") is not None:
                    if composer.price_locked:
                        composer.unlock_price()
                    composer.enter_price(item["unitPrice"])
                    source = "manual"
                elif result is not None and result.found:
                    source = "active price"
                else:
                    source = "none"
                line = composer.add_line()
                click.echo(
                    f"  + line {position}: material {line.master_material_id}  "
                    f"{line.quantity} {line.unit} @ {line.unit_price} ({source})"
                )
            click.echo(f"\n  Cart total: {composer.total:.2f}")
            return await composer.submit()

    bill = _run(compose())
    click.echo("\n✓ Purchase bill created")
    _echo_bill(bill)


# --------------------------------------------------------------------
# grn commands
# --------------------------------------------------------------------

@cli.group()
def grn() -> None:
    """Update goods-receipt (GRN) tracking on a bill."""


@grn.command("item")
@click.argument("bill_id", type=int)
@click.argument("line_id", type=int)
@click.option("--remarks", default=None, help="Remarks to store on the line")
@click.pass_context
def grn_item(ctx: click.Context, bill_id: int, line_id: int, remarks: Optional[str]) -> None:
    """Toggle whether the goods on one bill line have been received."""
    config: Config = ctx.obj["config"]

    async def toggle() -> PurchaseBill:
        async with PurchaseApiClient.from_config(config) as api:
            store = BillAggregateStore(api)
            if await store.fetch_bill(bill_id) is None:
                raise BillingError(f"Could not load purchase bill {bill_id}: {store.selected.error}")
            return await GrnUpdateWorkflow(api, store).toggle_line_receipt(line_id, remarks)

    _echo_bill(_run(toggle()))


@grn.command("hardcopy")
@click.argument("bill_id", type=int)
@click.argument("flag", type=click.Choice(["purchaser", "accountant"]))
@click.pass_context
def grn_hardcopy(ctx: click.Context, bill_id: int, flag: str) -> None:
    """Toggle the GRN hardcopy flag: received by purchaser / handed to accountant."""
    config: Config = ctx.obj["config"]
    which = {
        "purchaser": HardcopyFlag.RECEIVED_BY_PURCHASER,
        "accountant": HardcopyFlag.HANDED_TO_ACCOUNTANT,
    }[flag]

    async def toggle() -> PurchaseBill:
        async with PurchaseApiClient.from_config(config) as api:
            store = BillAggregateStore(api)
            if await store.fetch_bill(bill_id) is None:
                raise BillingError(f"Could not load purchase bill {bill_id}: {store.selected.error}")
            return await GrnUpdateWorkflow(api, store).toggle_hardcopy(which)

    _echo_bill(_run(toggle()))


# --------------------------------------------------------------------
# price command
# --------------------------------------------------------------------

@cli.command()
@click.argument("supplier_id", type=int)
@click.argument("material_id", type=int)
@click.argument("unit")
@click.argument("date")
@click.pass_context
def price(ctx: click.Context, supplier_id: int, material_id: int, unit: str, date: str) -> None:
    """Resolve the active price for a supplier, material and unit on DATE (YYYY-MM-DD)."""
    config: Config = ctx.obj["config"]
    key = PriceLookupKey.build(supplier_id, material_id, unit, date)
    if key is None:
        click.echo("✗ supplier, material, unit and date are all required", err=True)
        sys.exit(1)

    async def resolve():
        async with PurchaseApiClient.from_config(config) as api:
            return await PriceLookupClient(api).resolve(key)

    result = _run(resolve())
    if result.found:
        click.echo(f"  {result.quote.price} per {result.quote.unit or unit}")
    elif result.error:
        click.echo(f"✗ Lookup failed: {result.error}", err=True)
        sys.exit(1)
    else:
        click.echo("  No active price; enter the price manually.")


# --------------------------------------------------------------------
# masterdata commands
# --------------------------------------------------------------------

@cli.group()
def masterdata() -> None:
    """Browse master data (sites, suppliers, item categories, materials, brands)."""


@masterdata.command("list")
@click.argument("resource", type=click.Choice(sorted(MasterDataDirectory.RESOURCES.values())))
@click.pass_context
def masterdata_list(ctx: click.Context, resource: str) -> None:
    """List every record of RESOURCE."""
    config: Config = ctx.obj["config"]

    async def load():
        async with PurchaseApiClient.from_config(config) as api:
            return await MasterDataDirectory(api).collection(resource).list()

    records = _run(load())
    click.echo()
    for record in records:
        extra = getattr(record, "default_unit", None) or getattr(record, "location", None) or ""
        click.echo(f"  {record.id:<6} {record.name:<40} {extra}")
    click.echo(f"\n  {len(records)} {resource}.\n")


if __name__ == "__main__":
    cli()
