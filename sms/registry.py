# sms/registry.py

import logging
import threading

from sms.dialog import SmsDialog
from sms.errors import ConfigurationMissing
from sms.questions import compile_questions, load_specification

logger = logging.getLogger(__name__)


class SmsAppRegistry:
    """
    Process-local registry of compiled SMS dialogs.

    - One SmsDialog per (org, project), built on first use.
    - Concurrent first requests for the same pair build it once (per-key lock).
    - rebuild() replaces a dialog wholesale; conversations already holding
      question indices from the old form are not migrated.
    """

    def __init__(self, settings, reports):
        self.settings = settings
        self.reports = reports
        self._lock = threading.Lock()
        self._key_locks = {}
        self._dialogs = {}

    def _key_lock(self, key):
        with self._lock:
            return self._key_locks.setdefault(key, threading.Lock())

    def _forget_key_lock(self, key):
        with self._lock:
            if key not in self._dialogs:
                self._key_locks.pop(key, None)

    def get(self, org, project) -> SmsDialog:
        key = (org, project)
        dialog = self._dialogs.get(key)
        if dialog is not None:
            return dialog

        with self._key_lock(key):
            # another request may have finished building while we waited
            dialog = self._dialogs.get(key)
            if dialog is None:
                try:
                    dialog = self._build(org, project)
                except ConfigurationMissing:
                    # unknown forms must not leave a lock behind
                    self._forget_key_lock(key)
                    raise
                self._dialogs[key] = dialog
            return dialog

    def rebuild(self, org, project) -> SmsDialog:
        key = (org, project)
        with self._key_lock(key):
            dialog = self._build(org, project)
            self._dialogs[key] = dialog
            return dialog

    def snapshot(self):
        with self._lock:
            return list(self._dialogs)

    def _build(self, org, project):
        logger.info("Initialising SMS dialog for %s/%s", org, project)
        spec = load_specification(self.settings.spec_dir, org, project)
        return SmsDialog(
            org,
            project,
            spec,
            compile_questions(spec),
            self.reports,
            help_phone=self.settings.help_phone_number,
            evidence_base_url=self.settings.evidence_base_url,
            max_attempts=self.settings.alias_max_attempts,
        )
