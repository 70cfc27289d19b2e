"""Minimal runner for the campaign engine.

Usage:
	python run_campaigns.py list
	python run_campaigns.py upsert --json '{"status": "active", "message": "Hi"}' [--deliver] [--force]
	python run_campaigns.py run [--force]
	python run_campaigns.py deliver <campaign_id> [--force]
	python run_campaigns.py counts
	python run_campaigns.py serve --interval 60

Backends come from the environment (CAMPAIGN_STORE_BACKEND, CAMPAIGN_GUARD_BACKEND,
CAMPAIGN_TRANSPORT); `--store/--guard/--transport` override them.
"""
import argparse
import json
import logging
import sys
import time

from config import settings
from campaign_engine.exceptions import CampaignEngineError, NotFoundError, ValidationError
from campaign_engine.factory import create_campaign_manager
from campaign_engine.control_layer.scheduler import PeriodicTrigger


def _emit(obj):
	if hasattr(obj, 'to_dict'):
		obj = obj.to_dict()
	elif hasattr(obj, 'to_record'):
		obj = obj.to_record()
	print(json.dumps(obj, default=str, ensure_ascii=False, indent=2))


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description='Store, schedule and deliver push-notification campaigns')
	parser.add_argument('--store', help='persistence backend: memory | redis | supabase')
	parser.add_argument('--guard', help='lease backend: memory | redis')
	parser.add_argument('--transport', help='push transport: feed | noop')
	parser.add_argument('-v', '--verbose', action='store_true', help='Log monitoring events to stderr')
	sub = parser.add_subparsers(dest='command', required=True)

	sub.add_parser('list', help='List campaigns, newest first')

	up = sub.add_parser('upsert', help='Create or update a campaign from a JSON payload')
	up.add_argument('--json', required=True, dest='payload', help='JSON object; include "id" to update')
	up.add_argument('--deliver', action='store_true', help='Deliver straight away if due')
	up.add_argument('--force', action='store_true', help='Ignore the delivery window when delivering')

	run = sub.add_parser('run', help='Deliver every due campaign once')
	run.add_argument('--force', action='store_true', help='Ignore delivery windows')

	dl = sub.add_parser('deliver', help='Deliver one campaign')
	dl.add_argument('campaign_id')
	dl.add_argument('--force', action='store_true', help='Ignore the delivery window')

	sub.add_parser('counts', help='Dashboard counters')

	serve = sub.add_parser('serve', help='Run the scheduler periodically until interrupted')
	serve.add_argument('--interval', type=float, default=60.0, help='Seconds between runs')
	return parser


def main(argv=None) -> int:
	args = build_parser().parse_args(argv)
	if args.verbose:
		logging.basicConfig(level=logging.INFO, stream=sys.stderr)

	missing = settings.validate_keys()
	if missing:
		print(f"missing configuration: {', '.join(missing)}", file=sys.stderr)
		return 1

	manager = create_campaign_manager(store_kind=args.store, guard_kind=args.guard, transport_kind=args.transport)

	try:
		if args.command == 'list':
			_emit([c.to_record() for c in manager.list_campaigns()])
		elif args.command == 'upsert':
			try:
				payload = json.loads(args.payload)
			except json.JSONDecodeError as e:
				raise ValidationError(f'--json is not valid JSON: {e}') from e
			res = manager.upsert_and_deliver(payload, deliver=args.deliver, force=args.force)
			_emit({
				'created': res['created'],
				'item': res['item'].to_record(),
				'delivery': res['delivery'].to_dict() if res['delivery'] else None,
			})
		elif args.command == 'run':
			_emit(manager.run_due(force=args.force))
		elif args.command == 'deliver':
			_emit(manager.deliver(args.campaign_id, force=args.force))
		elif args.command == 'counts':
			_emit(manager.counts())
		elif args.command == 'serve':
			trigger = PeriodicTrigger()
			trigger.schedule('campaign-run', args.interval, lambda: _emit(manager.run_due()))
			try:
				while True:
					time.sleep(1)
			except KeyboardInterrupt:
				trigger.stop()
	except NotFoundError as e:
		print(f'not found: {e}', file=sys.stderr)
		return 2
	except ValidationError as e:
		print(f'invalid payload: {e}', file=sys.stderr)
		for err in e.errors:
			print(f'  {err}', file=sys.stderr)
		return 2
	except CampaignEngineError as e:
		print(f'error: {e}', file=sys.stderr)
		return 1
	return 0


if __name__ == '__main__':
	sys.exit(main())
