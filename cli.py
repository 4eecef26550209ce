from __future__ import annotations

import argparse
import logging
import signal
import sys
from threading import Event

from crh.consul import ConsulAgent, read_token
from crh.errors import HookError
from crh.flags import FlagServiceProvider
from crh.health import HealthChecker, LivenessGate
from crh.k8s import KubernetesClient
from crh.ports import parse_port_definitions
from crh.provider import ServiceProvider
from crh.settings import settings
from crh.tags import TagComposer

logger = logging.getLogger("crh")


def _add_sources(sub: argparse._SubParsersAction, verb: str) -> None:
    p = sub.add_parser(verb, help=f"{verb} service in Consul discovery service")
    sources = p.add_subparsers(dest="source", required=True)

    s_k8s = sources.add_parser("k8s", help=f"{verb} using data from Kubernetes API")
    s_k8s.add_argument("--namespace", default=settings.pod_namespace, help="Pod namespace (KUBERNETES_POD_NAMESPACE)")
    s_k8s.add_argument("--pod-name", default=settings.pod_name, help="Pod name (KUBERNETES_POD_NAME)")
    s_k8s.add_argument("--timeout", type=float, default=settings.timeout_s, help="Seconds to wait for valid pod data")
    s_k8s.add_argument("--poll-interval", type=float, default=settings.poll_interval_s)
    s_k8s.add_argument(
        "--health-check-timeout",
        type=float,
        default=settings.health_check_timeout_s,
        help="Seconds to wait for the pod's startup/readiness probe before registering (0 disables)",
    )

    s_flags = sources.add_parser("flags", help=f"{verb} using values passed on the command line")
    s_flags.add_argument("--service-name", required=True)
    s_flags.add_argument("--pod-ip", required=True)
    s_flags.add_argument("--container-port", type=int, required=True)
    s_flags.add_argument("--service-tags", default="", help="Comma separated tags")
    s_flags.add_argument("--check-path", default="/")


def build_provider(args: argparse.Namespace, cancel: Event | None = None):
    if args.source == "flags":
        return FlagServiceProvider(
            service_name=args.service_name,
            host=args.pod_ip,
            port=args.container_port,
            tags=args.service_tags,
            check_path=args.check_path,
        )

    liveness = None
    if args.cmd == "register" and args.health_check_timeout > 0:
        liveness = LivenessGate(HealthChecker(), timeout_s=args.health_check_timeout, cancel=cancel)

    return ServiceProvider(
        KubernetesClient(),
        namespace=args.namespace,
        name=args.pod_name,
        timeout_s=args.timeout,
        poll_interval_s=args.poll_interval,
        port_definitions=parse_port_definitions(settings.port_definitions),
        composer=TagComposer(service_port=settings.service_port, lb_tag_prefix=settings.lb_tag_prefix),
        liveness=liveness,
        cancel=cancel,
    )


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="consul-registration-hook",
        description="Synchronous registration and deregistration of a pod in Consul discovery service",
    )
    p.add_argument("--consul-address", default=settings.consul_address, help="Consul agent address (CONSUL_HTTP_ADDR)")
    p.add_argument("--token-file", default=None, help="File with Consul ACL token (defaults to CONSUL_HTTP_TOKEN)")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)
    _add_sources(sub, "register")
    _add_sources(sub, "deregister")

    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )

    cancel = Event()

    def _on_signal(signum, _frame) -> None:
        logger.warning("received signal %d, cancelling", signum)
        cancel.set()

    signal.signal(signal.SIGTERM, _on_signal)

    agent = ConsulAgent(
        address=args.consul_address,
        token=read_token(args.token_file, settings.consul_token),
    )

    try:
        provider = build_provider(args, cancel)
        if args.cmd == "register":
            records = provider.register(agent)
        else:
            records = provider.deregister(agent)
    except HookError as e:
        logger.error("%s failed: %s", args.cmd, e)
        return 1

    logger.info("%s finished for %d service(s)", args.cmd, len(records))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
