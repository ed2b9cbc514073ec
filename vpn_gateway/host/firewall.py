"""Firewall rule listing, parsing and mutation via iptables."""

import re
import shlex
from typing import List, Optional

from .command_factory import HostCommandFactory
from .commands import validate_chain
from .exceptions import StaleRuleError, ValidationError
from .locks import KeyedLocks
from .models import FirewallRule, PortRule
from .utils import check_result
from ..logging_utility import logger


CHAIN_HEADER = "Chain "
_RULE_LINE = re.compile(r"^(\d+)")
_PORT = re.compile(r"(?:--dport\s+|dpt:)(\d+)")
_SPORT = re.compile(r"(?:--sport\s+|spt:)(\d+)")

PORT_ACTIONS = {"allow": "ACCEPT", "deny": "DROP"}
PORT_PROTOCOLS = ("tcp", "udp")


def parse_rule_listing(output: str) -> List[FirewallRule]:
    """
    Parse ``iptables -L -n --line-numbers`` output.

    Rules belong to the nearest preceding ``Chain`` header. Rule ids combine the
    chain with the line index and are only meaningful for this one listing.
    """
    rules = []
    chain = ""
    for index, line in enumerate(output.splitlines()):
        if line.startswith(CHAIN_HEADER):
            parts = line.split()
            chain = parts[1] if len(parts) > 1 else ""
            continue
        match = _RULE_LINE.match(line)
        if not match:
            continue
        if not chain:
            logger.warning(f"Rule line {index} appears before any chain header")
        rules.append(FirewallRule(
            id=f"{chain}-{index}",
            chain=chain,
            rule_text=line.strip(),
            number=int(match.group(1)),
        ))
    return rules


def to_port_rule(rule: FirewallRule) -> Optional[PortRule]:
    """Port view of a rule, or None when the rule does not match on a port."""
    text = rule.rule_text
    match = _PORT.search(text) or _SPORT.search(text)
    if not match:
        return None

    tokens = text.split()
    if "-j" in tokens and tokens.index("-j") + 1 < len(tokens):
        target = tokens[tokens.index("-j") + 1]
    else:
        # listing columns: num target prot opt source destination
        target = tokens[1] if len(tokens) > 1 else ""
    if "-p" in tokens and tokens.index("-p") + 1 < len(tokens):
        protocol = tokens[tokens.index("-p") + 1]
    else:
        protocol = tokens[2] if len(tokens) > 2 else ""

    return PortRule(
        id=rule.id,
        chain=rule.chain,
        number=rule.number,
        port=int(match.group(1)),
        protocol=protocol.lower(),
        action="allow" if target == "ACCEPT" else "deny",
    )


class FirewallManager:
    def __init__(self, runner, factory: HostCommandFactory, locks: Optional[KeyedLocks] = None):
        self.runner = runner
        self.factory = factory
        self.locks = locks or KeyedLocks()

    async def list_rules(self) -> List[FirewallRule]:
        result = check_result(await self.runner(self.factory.list_rules()))
        return parse_rule_listing(result.stdout)

    async def add_rule(self, chain: str, spec: str) -> None:
        """Append ``spec`` as the last rule of ``chain``."""
        validate_chain(chain)
        if not spec or not spec.strip():
            raise ValidationError("Chain and rule are required")
        try:
            rule_args = shlex.split(spec)
        except ValueError as e:
            raise ValidationError(f"Invalid rule specification: {e}")

        async with self.locks.get(f"chain:{chain}"):
            check_result(await self.runner(self.factory.append_rule(chain, rule_args)))
        logger.info(f"Added rule to {chain}: {spec}")

    async def remove_rule(self, chain: str, position: int, expected: Optional[str] = None) -> None:
        """
        Delete the rule at a 1-based position.

        Args:
            chain: Chain name
            position: Rule number from the most recent listing
            expected: Rule text the caller saw; when given the chain is re-listed
                and the delete only happens if that position still holds it
        """
        validate_chain(chain)
        if position < 1:
            raise ValidationError("Rule number must be 1 or greater")

        async with self.locks.get(f"chain:{chain}"):
            if expected is not None:
                current = await self.list_rules()
                match = next((r for r in current if r.chain == chain and r.number == position), None)
                if match is None or match.rule_text != expected.strip():
                    raise StaleRuleError(
                        f"Rule {position} in {chain} changed since it was listed; list the rules again"
                    )
            check_result(await self.runner(self.factory.delete_rule(chain, position)))
        logger.info(f"Removed rule {position} from {chain}")

    async def list_port_rules(self) -> List[PortRule]:
        rules = await self.list_rules()
        return [p for p in (to_port_rule(r) for r in rules) if p is not None]

    async def add_port_rule(self, port: int, protocol: str, action: str, chain: str = "INPUT") -> str:
        """Open or block a port; returns the rule specification that was appended."""
        if not 1 <= port <= 65535:
            raise ValidationError("Port must be between 1 and 65535")
        protocol = protocol.lower()
        if protocol not in PORT_PROTOCOLS:
            raise ValidationError(f"Protocol must be one of: {', '.join(PORT_PROTOCOLS)}")
        target = PORT_ACTIONS.get(action.lower())
        if target is None:
            raise ValidationError(f"Action must be one of: {', '.join(PORT_ACTIONS)}")

        spec = f"-p {protocol} --dport {port} -j {target}"
        await self.add_rule(chain, spec)
        return spec
