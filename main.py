from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from canvasreport.adapters.assets import AssetProvider, FileAssetProvider, HttpAssetConfig, HttpAssetProvider
from canvasreport.adapters.modal import LoggingModalHost
from canvasreport.capture.renderer import PlaywrightRenderer
from canvasreport.config import Settings, get_settings
from canvasreport.dom import load_document
from canvasreport.pipeline import ReportOptions, ReportPipeline
from canvasreport.storage import delete_report, list_reports, save_report
from canvasreport.types import ReportOutcome


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _outcome_snapshot(outcome: ReportOutcome, output_path: Path | None) -> dict:
    return {
        'status': outcome.status.value,
        'title': outcome.title,
        'file_name': outcome.file_name,
        'error': outcome.error,
        'failed_phase': outcome.failed_phase.value if outcome.failed_phase else None,
        'output_path': str(output_path) if output_path else None,
        'size_bytes': len(outcome.pdf or b''),
        'started_at': outcome.started_at.isoformat(),
        'finished_at': outcome.finished_at.isoformat() if outcome.finished_at else None,
    }


def _asset_provider(settings: Settings) -> AssetProvider | None:
    if settings.template_path is not None:
        return FileAssetProvider(settings.template_path, settings.logo_path)
    if settings.assets_base_url:
        return HttpAssetProvider(
            HttpAssetConfig(
                base_url=settings.assets_base_url,
                endpoint=settings.assets_endpoint,
                timeout_seconds=settings.assets_timeout_seconds,
            )
        )
    return None


async def _generate(args: argparse.Namespace, settings: Settings) -> ReportOutcome:
    document = load_document(Path(args.html).read_text(encoding='utf-8'))
    renderer = PlaywrightRenderer(
        viewport_width=settings.browser_viewport_width,
        viewport_height=settings.browser_viewport_height,
        headless=settings.browser_headless,
    )
    options = ReportOptions.from_settings(settings)
    if args.no_toc:
        options.allow_table_of_contents = False
    if args.organization:
        options.organization = args.organization

    pipeline = ReportPipeline(
        document,
        renderer=renderer,
        assets=_asset_provider(settings),
        modal=LoggingModalHost(),
    )
    try:
        outcome = await pipeline.generate(options)
        await pipeline.drain()
    finally:
        await renderer.aclose()
    return outcome


def cmd_generate(args: argparse.Namespace) -> int:
    settings = get_settings()
    html_path = Path(args.html).expanduser().resolve()
    if not html_path.exists() or not html_path.is_file():
        _print_json({'status': 'error', 'message': f'Dashboard HTML not found: {html_path}'})
        return 2

    outcome = asyncio.run(_generate(args, settings))
    if not outcome.ok or outcome.pdf is None:
        _print_json(_outcome_snapshot(outcome, None))
        return 1

    out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else Path.cwd()
    out_dir.mkdir(parents=True, exist_ok=True)
    output_path = out_dir / (outcome.file_name or 'report.pdf')
    output_path.write_bytes(outcome.pdf)

    payload = _outcome_snapshot(outcome, output_path)
    if args.tenant:
        record = save_report(outcome.pdf, tenant=args.tenant, file_name=outcome.file_name or output_path.name)
        payload['stored'] = record.model_dump(mode='json')
    _print_json(payload)
    return 0


def cmd_reports(args: argparse.Namespace) -> int:
    records = list_reports(args.tenant)
    _print_json({'tenant': args.tenant, 'reports': [record.model_dump(mode='json') for record in records]})
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    try:
        delete_report(args.file_id)
    except (FileNotFoundError, ValueError) as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 2
    _print_json({'status': 'deleted', 'file_id': args.file_id})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Canvas dashboard PDF report CLI')
    parser.add_argument('--log-level', default='INFO', help='Logging level')
    sub = parser.add_subparsers(dest='command', required=True)

    generate = sub.add_parser('generate', help='Render a dashboard snapshot into a PDF report')
    generate.add_argument('--html', required=True, help='Path to the dashboard HTML snapshot')
    generate.add_argument('--out-dir', required=False, help='Directory for the generated PDF')
    generate.add_argument('--organization', required=False, help='Organization shown in page footers')
    generate.add_argument('--no-toc', action='store_true', help='Shift footer numbering as if no contents page')
    generate.add_argument('--tenant', required=False, help='Also store the report for this tenant')
    generate.set_defaults(func=cmd_generate)

    reports = sub.add_parser('reports', help='List stored reports for a tenant')
    reports.add_argument('--tenant', required=True, help='Tenant name')
    reports.set_defaults(func=cmd_reports)

    delete = sub.add_parser('delete', help='Delete a stored report')
    delete.add_argument('--file-id', required=True, help='Report file ID')
    delete.set_defaults(func=cmd_delete)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
