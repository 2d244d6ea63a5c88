# Copyright 2025 acstorbench Authors. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Pgbench benchmark for PostgreSQL on CloudNativePG.

  A three instance CloudNativePG cluster (one primary, two replicas) is created
  on the storage class of the run: local NVMe through Azure Container Storage
  for the pgsql mode, Azure Premium SSD v2 for the pgsql-azure-disk mode.

  After the dataset is initialized a warm-up run is discarded and three timed
  sub-tests follow: mixed read/write (TPC-B like), read-only (-S) and
  write-only (-N). Each completed sub-test writes its own result log.

  Documentations of pgbench
  https://www.postgresql.org/docs/current/pgbench.html
"""

import logging
from typing import List

from acstorbench import benchmark_spec as benchmark_spec_lib
from acstorbench import cluster_cleanup
from acstorbench import cnpg
from acstorbench import pgbench
from acstorbench import results
from acstorbench import storage

BENCHMARK_NAME = 'pgbench'

_DESCRIPTIONS = {
    benchmark_spec_lib.PGSQL:
        'Local NVMe + Azure Container Storage (CNPG HA)',
    benchmark_spec_lib.PGSQL_AZURE_DISK:
        'Azure Premium SSD v2 (80k IOPS, 1200 MBps) with CNPG HA',
}


def Prepare(spec: benchmark_spec_lib.BenchmarkSpec) -> cnpg.CnpgCluster:
  """Resets the cluster and creates the database cluster.

  Returns:
    The ready (or best effort ready) CnpgCluster.
  """
  cluster_cleanup.CleanupCluster()
  storage.ApplyStorageClass(storage.StorageBackend.EPHEMERAL_NVME)
  if spec.backend != storage.StorageBackend.EPHEMERAL_NVME:
    storage.ApplyStorageClass(spec.backend)
  db_cluster = cnpg.CnpgCluster(cnpg.MakeClusterSpec(spec.storage_class))
  db_cluster.Create()
  return db_cluster


def GetMetadata(spec, db_cluster, sub_test):
  return (
      ('mode', spec.mode),
      ('test', sub_test.name),
      ('cluster', db_cluster.name),
      ('storage_class', spec.storage_class),
      ('instances', db_cluster.spec.instances),
      ('scale_factor', spec.scale),
      ('clients', spec.clients),
      ('jobs', spec.clients),
      ('seconds_per_test', spec.duration),
  )


def Run(spec: benchmark_spec_lib.BenchmarkSpec,
        db_cluster: cnpg.CnpgCluster) -> List[str]:
  """Initializes the dataset and runs the sub-tests.

  Returns:
    Paths of the result logs, one per sub-test.

  Raises:
    errors.Benchmarks.RunError: on the first failing pgbench invocation. Logs
      of sub-tests that completed before it are kept.
  """
  primary_pod = db_cluster.GetPrimaryPod()
  logging.info('=== PostgreSQL CNPG HA Benchmark Test: %s ===',
               _DESCRIPTIONS.get(spec.mode, spec.mode))
  logging.info('Cluster: %s Primary pod: %s Storage class: %s Clients: %d '
               'Duration: %ds', db_cluster.name, primary_pod,
               spec.storage_class, spec.clients, spec.duration)
  pgbench.Initialize(primary_pod, spec.scale)
  if spec.warmup:
    pgbench.WarmUp(primary_pod, spec.clients, spec.warmup)
  LogMonitoringCommands(primary_pod)

  paths = []
  for sub_test in pgbench.SUB_TESTS:
    stdout, stderr = pgbench.RunSubTest(primary_pod, sub_test, spec.clients,
                                        spec.duration)
    logging.info('pgbench output:\n%s', stdout)
    metadata = GetMetadata(spec, db_cluster, sub_test)
    samples = pgbench.ParsePgbenchOutput(stdout, stderr, dict(metadata))
    result_log = results.ResultLog(
        tool=results.PGBENCH_TOOL,
        label='%s %s' % (spec.storage_class, sub_test.name),
        timestamp=results.FormatTimestamp(),
        summary_lines=tuple(pgbench.ExtractSummaryLines(stdout)),
        samples=tuple(samples),
        metadata=metadata)
    paths.append(result_log.Write())
  logging.info('=== Test Complete: %s ===',
               _DESCRIPTIONS.get(spec.mode, spec.mode))
  LogPostRunCommands(db_cluster, primary_pod)
  return paths


def LogMonitoringCommands(primary_pod):
  logging.info(
      'Monitor PostgreSQL activity in another terminal with:\n'
      "  kubectl exec -it %s -- psql -U postgres -d benchmarkdb -c "
      "'SELECT * FROM pg_stat_activity;'\n"
      "  kubectl exec -it %s -- psql -U postgres -d benchmarkdb -c "
      "'SELECT * FROM pg_stat_replication;'", primary_pod, primary_pod)


def LogPostRunCommands(db_cluster, primary_pod):
  selector = 'cnpg.io/cluster=%s' % db_cluster.name
  commands = [
      'kubectl top pod -l %s' % selector,
      'kubectl logs %s -f' % primary_pod,
      'kubectl get cluster %s' % db_cluster.name,
      'kubectl get pods -l %s' % selector,
      'kubectl get pvc',
      'kubectl exec -it %s -- pgbench -c 8 -j 8 -T 60 -P 10 -U postgres '
      'benchmarkdb' % primary_pod,
  ]
  logging.info('PostgreSQL CNPG HA benchmark completed successfully! Useful '
               'commands:\n  %s', '\n  '.join(commands))


def RunBenchmark(spec: benchmark_spec_lib.BenchmarkSpec) -> List[str]:
  db_cluster = Prepare(spec)
  return Run(spec, db_cluster)
