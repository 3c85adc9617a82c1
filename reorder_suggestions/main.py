import argparse
import json
import sys

from reorder_suggestions.config import config
from reorder_suggestions.db import db, session_scope
from reorder_suggestions.exceptions import ReorderError
from reorder_suggestions.logging_setup import logger, get_logger
from reorder_suggestions.utils.date_utils import convert_to_date


def init_application():
    """Initialize application components."""
    db.initialize()

    log = logger.app_logger
    log.info("Reorder Suggestion Engine initialized")
    log.info(f"Using database: {config.get_db_url()}")

    return True

def setup_database(drop_existing=False):
    """Create the database schema.

    Args:
        drop_existing: Drop existing tables first
    """
    log = get_logger('setup')
    if drop_existing:
        log.info("Dropping existing tables")
        db.drop_all_tables()

    db.create_all_tables()
    log.info("Database tables created")

def run_suggestions(args):
    """Run the reorder suggestion batch.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    from reorder_suggestions.services.suggestion_service import build_orchestrator

    log = get_logger('suggestions')

    if args.dry_run:
        config.set('SUGGESTIONS', 'enable_dry_run', 'True')
    if args.workers:
        config.set('SUGGESTIONS', 'max_workers', str(args.workers))

    today = convert_to_date(args.date)

    # The scoped session registry gives each worker thread its own session
    with session_scope():
        orchestrator = build_orchestrator(db.session, config)

        batch = orchestrator.run_batch(today=today, create_orders=not args.restock_only)

        if args.json:
            print(json.dumps(batch.summary(), indent=2))
        else:
            print(batch.message)
            for result in batch.suppliers:
                print(f"  {result.supplier_name}: {result.status}")
                for analysis in result.analyses:
                    print(
                        f"    {analysis.sku or analysis.product_id} {analysis.product_name}: "
                        f"{analysis.suggested_qty} ({analysis.reason})"
                    )

            for result in batch.choices_needed:
                orders = ', '.join(str(order['id']) for order in result.existing_orders)
                print(f"{result.supplier_name} has open purchase orders {orders}, run 'choose' to order")

            if batch.anomalies:
                print("Anomalies:")
                for anomaly in batch.anomalies:
                    print(f"  {anomaly}")

            if batch.products_without_supplier:
                print(f"{len(batch.products_without_supplier)} products have no supplier")

        log.info(batch.message)
        return 1 if batch.errors else 0

def evaluate_product(args):
    """Evaluate a single product and print the analysis.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    from reorder_suggestions.services.suggestion_service import build_orchestrator

    today = convert_to_date(args.date)

    with session_scope() as session:
        orchestrator = build_orchestrator(session, config)

        product = orchestrator.directory.get_product(args.product_id)
        if not product:
            print(f"Product {args.product_id} not found")
            return 1

        if product.supplier_id is None:
            print(f"Product {args.product_id} has no supplier")
            return 1

        supplier = orchestrator.directory.get_supplier(product.supplier_id)
        analysis = orchestrator.engine.evaluate_product(product, supplier, today)
        sales = orchestrator.engine.sales_summary(product, supplier, today)

        print(json.dumps(analysis.to_dict(), indent=2))
        print(f"Sales: {sales['year']:g} last year, {sales['period']} per order period")

        if args.trace:
            for step in analysis.trace:
                print(f"{step.stage}: {dict(step.values)}")

        return 0

def choose_order(args):
    """Order a supplier's suggestions on an open or a new purchase order.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    from reorder_suggestions.services.suggestion_service import build_orchestrator

    today = convert_to_date(args.date)

    with session_scope() as session:
        orchestrator = build_orchestrator(session, config)
        supplier = orchestrator.directory.get_supplier(args.supplier_id)
        if not supplier:
            print(f"Supplier {args.supplier_id} not found")
            return 1

        result = orchestrator.execute_choice(supplier, args.order_id, today)

        if result.order_reference is None:
            print(f"{supplier.name}: {result.status}")
        else:
            print(f"{supplier.name}: {len(result.analyses)} products on purchase order {result.order_reference}")

        return 0

def show_closures(args):
    """Print the closed periods and lead time adjustment of a supplier.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    from reorder_suggestions.services.suggestion_service import build_orchestrator

    today = convert_to_date(args.date)

    with session_scope() as session:
        orchestrator = build_orchestrator(session, config)
        supplier = orchestrator.directory.get_supplier(args.supplier_id)
        if not supplier:
            print(f"Supplier {args.supplier_id} not found")
            return 1

        calendar = orchestrator.engine.calendar
        for period in calendar.get_periods(supplier, today):
            print(
                f"{period.name}: {period.closure_start.isoformat()} to "
                f"{period.closure_end.isoformat()}"
            )

        adjustment = calendar.adjusted_lead_time(
            supplier, orchestrator.engine.base_lead_time(supplier), today
        )
        print(f"Lead time: {adjustment.base_lead_time} -> {adjustment.lead_time} days")
        if adjustment.reason:
            print(f"  {adjustment.reason}")

        return 0

def assign_supplier(args):
    """Assign a supplier to one or more products.

    Args:
        args: Command-line arguments

    Returns:
        Process exit code
    """
    from reorder_suggestions.services.supplier_assignment import SupplierAssignmentService

    with session_scope() as session:
        service = SupplierAssignmentService(session)
        result = service.bulk_assign_supplier(args.product_ids, args.supplier_id)

    print(f"{result['success_count']} products updated")
    for error in result['errors']:
        print(f"  {error}")

    return 0 if result['success'] else 1

def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(description='Reorder Suggestion Engine')

    parser.add_argument('--setup-db', action='store_true',
                        help='Set up the database schema')
    parser.add_argument('--drop-db', action='store_true',
                        help='Drop existing tables before setup')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    run_parser = subparsers.add_parser('run', help='Generate purchase order suggestions')
    run_parser.add_argument('--dry-run', action='store_true',
                            help='Report suggestions without creating purchase orders')
    run_parser.add_argument('--restock-only', action='store_true',
                            help='Only update the restock status of products')
    run_parser.add_argument('--date', type=str, help='Run date (YYYY-MM-DD), defaults to today')
    run_parser.add_argument('--workers', type=int, default=0,
                            help='Number of suppliers evaluated in parallel')
    run_parser.add_argument('--json', action='store_true', help='Print the summary as JSON')

    evaluate_parser = subparsers.add_parser('evaluate', help='Evaluate a single product')
    evaluate_parser.add_argument('--product-id', type=int, required=True, help='Product ID')
    evaluate_parser.add_argument('--date', type=str, help='Evaluation date (YYYY-MM-DD)')
    evaluate_parser.add_argument('--trace', action='store_true', help='Print the calculation trace')

    choose_parser = subparsers.add_parser('choose', help='Resolve a supplier with open purchase orders')
    choose_parser.add_argument('--supplier-id', type=int, required=True, help='Supplier ID')
    choose_parser.add_argument('--order-id', type=int,
                               help='Open purchase order to add to (a new order when omitted)')
    choose_parser.add_argument('--date', type=str, help='Run date (YYYY-MM-DD)')

    closures_parser = subparsers.add_parser('closures', help='Show closed periods of a supplier')
    closures_parser.add_argument('--supplier-id', type=int, required=True, help='Supplier ID')
    closures_parser.add_argument('--date', type=str, help='Reference date (YYYY-MM-DD)')

    assign_parser = subparsers.add_parser('assign-supplier', help='Assign a supplier to products')
    assign_parser.add_argument('--supplier-id', type=int, default=0,
                               help='Supplier ID (0 clears the supplier)')
    assign_parser.add_argument('product_ids', type=int, nargs='+', help='Product IDs')

    args = parser.parse_args()

    if args.setup_db:
        setup_database(args.drop_db)
        return 0

    init_application()

    commands = {
        'run': run_suggestions,
        'evaluate': evaluate_product,
        'choose': choose_order,
        'closures': show_closures,
        'assign-supplier': assign_supplier,
    }

    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 0

    try:
        return command(args)
    except ReorderError as e:
        logger.log_exception('app', e, f"Command {args.command} failed")
        print(f"Error: {e}")
        return 1

if __name__ == "__main__":
    sys.exit(main())
