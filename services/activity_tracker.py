"""
Activity tracker - keeps league members' active/inactive roles in sync
with how recently they have posted.

Message events feed the in-memory ledger; a periodic reconciliation pass
compares each league member's last activity against the inactivity
threshold and moves them between the active and inactive roles. The ledger
is flushed to disk by the store's auto-save task, pruned of long-stale
records once a day, and saved one last time on shutdown.

Per-member faults (missing permissions, closed DMs, network errors) are
logged and never stop the rest of the pass.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

import discord

from core.activity_store import ActivityStore
from core.constants import (
    BRAND_ICON_URL,
    BRAND_NAME,
    COLOR_ACTIVE,
    COLOR_INACTIVE,
    FOOTER_TEXT,
    K,
    RoleState,
)
from core.ledger import ActivityLedger
from core.paths import resolve_repo_path
from core.types import ActivityRecord, CycleReport
from core.utils import MS_PER_HOUR, days_to_ms, hours_to_ms, now_ms, utcnow

from .gateway import MemberGateway

logger = logging.getLogger("gridiron.activity")

ROLE_REASON = "Activity tracking"


def role_state_for(has_active: bool, has_inactive: bool) -> str:
    if has_active and has_inactive:
        return RoleState.CONFLICTED
    if has_active:
        return RoleState.ACTIVE
    if has_inactive:
        return RoleState.INACTIVE
    return RoleState.UNASSIGNED


def build_inactive_embed(member: Any, inactive_hours: float) -> discord.Embed:
    embed = discord.Embed(
        title="😴 You've Been Marked as Inactive",
        description=(
            f"Hey {member.name}, you haven't been active in the {BRAND_NAME} "
            f"server for over {inactive_hours:g} hours."
        ),
        color=COLOR_INACTIVE,
        timestamp=utcnow(),
    )
    embed.add_field(
        name="🔄 How to Get Back to Active",
        value="Simply send a message in any channel and you'll automatically be marked as active again!",
        inline=False,
    )
    embed.add_field(
        name="🏈 Stay Engaged",
        value="Keep participating in league discussions to maintain your active status.",
        inline=False,
    )
    embed.set_footer(text=FOOTER_TEXT, icon_url=BRAND_ICON_URL)
    return embed


def build_active_embed(member: Any) -> discord.Embed:
    embed = discord.Embed(
        title="🎉 Welcome Back to Active Status!",
        description=f"Great to see you back, {member.name}! You've been marked as active again.",
        color=COLOR_ACTIVE,
        timestamp=utcnow(),
    )
    embed.add_field(
        name="🏈 You're Back in the Game",
        value="Your active participation keeps our league strong and competitive!",
        inline=False,
    )
    embed.add_field(
        name="💪 Keep It Up",
        value="Stay engaged to maintain your active status in the league.",
        inline=False,
    )
    embed.set_footer(text=FOOTER_TEXT, icon_url=BRAND_ICON_URL)
    return embed


class ActivityTracker:
    """
    Owns the activity ledger, its durable store and the periodic tasks.

    One instance is built at startup and handed to the event wiring layer;
    nothing else mutates the ledger.
    """

    def __init__(
        self,
        config: dict[str, Any],
        gateway: MemberGateway,
        store: Optional[ActivityStore] = None,
        ledger: Optional[ActivityLedger] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config
        self.gateway = gateway
        self._clock = clock
        self.store = store or ActivityStore(resolve_repo_path(config[K.DATA_FILE]), clock=clock)
        self.ledger = ledger or ActivityLedger(
            sample_rate=float(config.get(K.ACTIVITY_LOG_SAMPLE_RATE, 0.01)),
            clock=clock,
        )

        self.guild_id = int(config[K.GUILD_ID])
        self.league_role_id = int(config[K.LEAGUE_ROLE_ID])
        self.active_role_id = int(config[K.ACTIVE_ROLE_ID])
        self.inactive_role_id = int(config[K.INACTIVE_ROLE_ID])
        self.inactive_hours = float(config.get(K.INACTIVE_HOURS, 26))
        self.threshold_ms = hours_to_ms(self.inactive_hours)
        self.retention_ms = days_to_ms(float(config.get(K.RETENTION_DAYS, 30)))

        self._guild_locks: dict[int, asyncio.Lock] = {}
        self._reconcile_task: Optional[asyncio.Task] = None
        self._retention_task: Optional[asyncio.Task] = None
        self.initialized = False

    # ─── Lifecycle ────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Load persisted activity into the ledger and start auto-saving."""
        data = await self.store.load()
        count = self.ledger.load_snapshot(data, merge=True)
        self.store.start_auto_save(
            float(self.config.get(K.AUTO_SAVE_INTERVAL_SECONDS, 600)),
            self.ledger.snapshot,
            on_saved=self._mark_persisted,
        )
        self.initialized = True
        logger.info("Activity tracker initialized with %s tracked users", count)

    def start_reconciliation(self) -> None:
        """Start the periodic reconciliation and retention tasks."""
        if self._reconcile_task is None or self._reconcile_task.done():
            interval = float(self.config.get(K.ACTIVITY_CHECK_INTERVAL_SECONDS, 1800))
            self._reconcile_task = asyncio.create_task(self._periodic_reconciliation(interval))
            logger.info("Activity checker started (every %s minutes)", round(interval / 60))
        if self._retention_task is None or self._retention_task.done():
            interval = float(self.config.get(K.RETENTION_SWEEP_INTERVAL_SECONDS, 86400))
            self._retention_task = asyncio.create_task(self._periodic_retention(interval))

    async def shutdown(self) -> None:
        """Stop every task and write the ledger one final time."""
        tasks = [t for t in (self._reconcile_task, self._retention_task) if t]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._reconcile_task = None
        self._retention_task = None

        await self.store.stop_auto_save()
        await self.save_now()
        logger.info("Activity tracker shutdown complete")

    # ─── Ledger access ────────────────────────────────────────────────────────

    def record_activity(self, user_id: Any, guild_id: Any, timestamp: Optional[int] = None) -> None:
        self.ledger.record_activity(user_id, guild_id, timestamp)

    def get(self, user_id: Any, guild_id: Any) -> Optional[ActivityRecord]:
        return self.ledger.get(user_id, guild_id)

    async def save_now(self) -> bool:
        snapshot = self.ledger.snapshot()
        saved = await self.store.save(snapshot)
        if saved:
            self._mark_persisted(snapshot["lastSave"])
        return saved

    def _mark_persisted(self, timestamp: int) -> None:
        self.ledger.last_persisted_at = timestamp

    async def prune_stale_records(self, retention_ms: Optional[int] = None) -> int:
        """Drop records older than the retention window, saving if any went."""
        window = self.retention_ms if retention_ms is None else int(retention_ms)
        cutoff = self._clock() - window
        removed = self.ledger.prune(cutoff)
        if removed > 0:
            await self.save_now()
            logger.info("Cleaned up %s old activity records", removed)
        return removed

    # ─── Reconciliation ───────────────────────────────────────────────────────

    def role_state(self, member: Any) -> str:
        return role_state_for(
            self.gateway.has_role(member, self.active_role_id),
            self.gateway.has_role(member, self.inactive_role_id),
        )

    async def run_cycle(self) -> Optional[CycleReport]:
        """Reconcile the configured guild, if the client can see it."""
        guild = self.gateway.get_guild(self.guild_id)
        if guild is None:
            logger.warning("Guild %s not found for activity check", self.guild_id)
            return None
        return await self.reconcile_guild(guild)

    async def reconcile_guild(self, guild: Any) -> CycleReport:
        """
        Run one reconciliation pass over ``guild``.

        Passes over the same guild never overlap; a second caller waits for
        the running pass to finish and then performs its own.
        """
        lock = self._guild_locks.setdefault(guild.id, asyncio.Lock())
        async with lock:
            return await self._reconcile_locked(guild)

    async def _reconcile_locked(self, guild: Any) -> CycleReport:
        report = CycleReport(guild_id=guild.id)

        league_role = self.gateway.resolve_role(guild, self.league_role_id)
        active_role = self.gateway.resolve_role(guild, self.active_role_id)
        inactive_role = self.gateway.resolve_role(guild, self.inactive_role_id)
        if league_role is None or active_role is None or inactive_role is None:
            logger.warning("Required roles not found for activity check in guild %s", guild.id)
            report.skipped = True
            return report

        members = await self.gateway.fetch_members(guild)
        now = self._clock()

        for member in members:
            if self.gateway.is_automation(member):
                continue
            if not self.gateway.has_role(member, self.league_role_id):
                continue
            report.scanned += 1
            try:
                await self._reconcile_member(guild, member, now, active_role, inactive_role, report)
            except Exception as e:
                report.failures += 1
                logger.error(
                    "Failed to reconcile activity roles for member %s in guild %s: %s",
                    member.id,
                    guild.id,
                    e,
                )

        if report.changes > 0:
            logger.info("Activity check complete: %s role changes made", report.changes)
        else:
            logger.debug("Activity check complete for guild %s: no changes", guild.id)
        return report

    async def _reconcile_member(
        self,
        guild: Any,
        member: Any,
        now: int,
        active_role: Any,
        inactive_role: Any,
        report: CycleReport,
    ) -> None:
        state = self.role_state(member)
        record = self.ledger.get(member.id, guild.id)

        if record is None:
            # Never seen (or pruned): silent onboarding, not a transition.
            if state == RoleState.ACTIVE:
                return
            if state != RoleState.CONFLICTED:
                await self.gateway.add_role(member, active_role, ROLE_REASON)
            if state in (RoleState.INACTIVE, RoleState.CONFLICTED):
                await self.gateway.remove_role(member, inactive_role, ROLE_REASON)
            report.record_transition(member.id, state, RoleState.ACTIVE)
            logger.info("Added active role to new member: %s", member)
            return

        elapsed = record.elapsed_ms(now)

        if elapsed >= self.threshold_ms:
            if state == RoleState.ACTIVE:
                await self.gateway.add_role(member, inactive_role, ROLE_REASON)
                report.record_transition(member.id, state, RoleState.INACTIVE)
                logger.info(
                    "Moved %s to inactive (%sh since last activity)",
                    member,
                    round(elapsed / MS_PER_HOUR),
                )
                # Notify once the new role is held; a failed removal below is
                # repaired silently by the next pass.
                if await self._notify(member, build_inactive_embed(member, self.inactive_hours), "inactive"):
                    report.notified += 1
                await self.gateway.remove_role(member, active_role, ROLE_REASON)
            elif state == RoleState.CONFLICTED:
                await self.gateway.remove_role(member, active_role, ROLE_REASON)
                report.record_transition(member.id, state, RoleState.INACTIVE)
                logger.info("Cleared conflicting active role from inactive member %s", member)
            return

        if state == RoleState.INACTIVE:
            await self.gateway.add_role(member, active_role, ROLE_REASON)
            report.record_transition(member.id, state, RoleState.ACTIVE)
            logger.info("Moved %s back to active", member)
            if await self._notify(member, build_active_embed(member), "active"):
                report.notified += 1
            await self.gateway.remove_role(member, inactive_role, ROLE_REASON)
        elif state == RoleState.UNASSIGNED:
            await self.gateway.add_role(member, active_role, ROLE_REASON)
            report.record_transition(member.id, state, RoleState.ACTIVE)
            logger.info("Added active role to %s", member)
        elif state == RoleState.CONFLICTED:
            await self.gateway.remove_role(member, inactive_role, ROLE_REASON)
            report.record_transition(member.id, state, RoleState.ACTIVE)
            logger.info("Cleared conflicting inactive role from active member %s", member)

    async def _notify(self, member: Any, embed: discord.Embed, label: str) -> bool:
        """Best-effort DM; delivery failures are logged and never retried."""
        try:
            await self.gateway.send_direct_message(member, embed)
            return True
        except Exception as e:
            logger.debug("Could not send %s DM to %s: %s", label, member, e)
            return False

    async def mark_active(self, guild: Any, member: Any) -> bool:
        """Force ``member`` to active now: refresh the ledger and fix roles.

        Returns False when the activity roles cannot be resolved.
        """
        active_role = self.gateway.resolve_role(guild, self.active_role_id)
        inactive_role = self.gateway.resolve_role(guild, self.inactive_role_id)
        if active_role is None or inactive_role is None:
            return False
        self.record_activity(member.id, guild.id)
        lock = self._guild_locks.setdefault(guild.id, asyncio.Lock())
        async with lock:
            if not self.gateway.has_role(member, self.active_role_id):
                await self.gateway.add_role(member, active_role, "Forced active by an administrator")
            if self.gateway.has_role(member, self.inactive_role_id):
                await self.gateway.remove_role(member, inactive_role, "Forced active by an administrator")
        return True

    # ─── Periodic tasks ───────────────────────────────────────────────────────

    async def _periodic_reconciliation(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error("Error during activity check: %s", e, exc_info=True)

    async def _periodic_retention(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.prune_stale_records()
            except Exception as e:
                logger.error("Error cleaning up old activity data: %s", e, exc_info=True)
