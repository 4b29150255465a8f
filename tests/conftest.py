"""Shared test fixtures for kube-vault tests."""

import io
import threading

import pytest

from kube_vault.exceptions import SecretNotFoundError, StoreAccessError
from kube_vault.manifests.requirements import scan
from kube_vault.models import VaultPath


class FakeStore:
    """In-memory secret store recording every path it is asked about."""

    def __init__(self, secrets=None, folders=None, broken=()):
        self.secrets = {path: dict(data) for path, data in (secrets or {}).items()}
        self.folders = dict(folders or {})
        self.broken = set(broken)
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, op, path, key=None):
        with self._lock:
            self.calls.append((op, str(path), key))
        if str(path) in self.broken:
            raise StoreAccessError(str(path), "permission denied")

    @property
    def queried_paths(self):
        return {path for _, path, _ in self.calls}

    def exists(self, path: VaultPath, key=None):
        self._record("exists", path, key)
        data = self.secrets.get(str(path))
        if data is None:
            return False
        return key is None or key in data

    def fetch(self, path: VaultPath):
        self._record("fetch", path)
        data = self.secrets.get(str(path))
        if data is None:
            raise SecretNotFoundError(str(path))
        return {key: value.encode() for key, value in data.items()}

    def list_keys(self, path: VaultPath):
        self._record("list", path)
        return list(self.folders.get(str(path), []))


@pytest.fixture
def fake_store():
    """Factory for FakeStore instances."""
    return FakeStore


@pytest.fixture
def sample_manifests():
    """A helm-template-like stream mixing workloads and other resources."""
    return """---
# Source: app/templates/configmap.yaml
apiVersion: v1
kind: ConfigMap
metadata:
  name: settings
data:
  LOG_LEVEL: info
---
# Source: app/templates/deployment.yaml
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
spec:
  template:
    spec:
      containers:
        - name: app
          image: web:1.0
          env:
            - name: PLAIN
              value: hello
            - name: DB_PASSWORD
              valueFrom:
                secretKeyRef:
                  name: db-secrets
                  key: password
            - name: DB_USER
              valueFrom:
                secretKeyRef:
                  name: db-secrets
                  key: username
          envFrom:
            - secretRef:
                name: creds
            - configMapRef:
                name: settings
      volumes:
        - name: tls
          secret:
            secretName: tls-certs
            items:
              - key: tls.crt
                path: cert.pem
---
# Source: app/templates/cronjob.yaml
apiVersion: batch/v1
kind: CronJob
metadata:
  name: backup
spec:
  schedule: "0 * * * *"
  jobTemplate:
    spec:
      template:
        spec:
          initContainers:
            - name: init
              image: busybox
              env:
                - name: TOKEN
                  valueFrom:
                    secretKeyRef:
                      name: creds
                      key: token
          containers:
            - name: backup
              image: backup:1.0
          volumes:
            - name: db
              secret:
                secretName: db-secrets
"""


@pytest.fixture
def creds_deployment():
    """A Deployment importing one whole secret through envFrom."""
    return """apiVersion: apps/v1
kind: Deployment
metadata:
  name: api
spec:
  template:
    spec:
      containers:
        - name: api
          image: api:2.0
          envFrom:
            - secretRef:
                name: creds
"""


@pytest.fixture
def db_pod():
    """A bare Pod reading one key of db-secrets."""
    return """apiVersion: v1
kind: Pod
metadata:
  name: db-client
spec:
  containers:
    - name: client
      image: psql
      env:
        - name: PGPASSWORD
          valueFrom:
            secretKeyRef:
              name: db-secrets
              key: password
"""


@pytest.fixture
def scan_text():
    """Scan a YAML string and return the ScanResult."""

    def _scan(text):
        return scan(io.BytesIO(text.encode()))

    return _scan
