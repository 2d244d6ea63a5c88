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
"""Runs one Azure Container Storage benchmark, provisioning AKS if needed.

An AKS cluster that already has the local NVMe storage class of Azure
Container Storage is reused unless --force-new-cluster is given; otherwise a
new resource group, cluster and storage extension are created first.

Usage:
  acstorbench --iops                     # fio, 4k random reads
  acstorbench --bandwidth                # fio, 128k random reads
  acstorbench --pgsql                    # pgbench on local NVMe
  acstorbench --pgsql-azure-disk         # pgbench on Premium SSD v2
  acstorbench --cleanup                  # reset the current cluster
  acstorbench --iops --force-new-cluster
"""

import logging
import sys

from absl import flags

from acstorbench import aks_cluster
from acstorbench import benchmark_spec as benchmark_spec_lib
from acstorbench import cluster_cleanup
from acstorbench import cluster_locator
from acstorbench import errors
from acstorbench import flag_alias
from acstorbench import log_util
from acstorbench import preflight
from acstorbench.benchmarks import fio_benchmark
from acstorbench.benchmarks import pgbench_benchmark

flags.DEFINE_boolean('iops', False, 'Run IOPS test mode (4k block size).')
flags.DEFINE_boolean('bandwidth', False,
                     'Run bandwidth test mode (128k block size).')
flags.DEFINE_boolean('pgsql', False,
                     'Run PostgreSQL benchmark on local NVMe + Azure '
                     'Container Storage.')
flags.DEFINE_boolean('pgsql_azure_disk', False,
                     'Run PostgreSQL benchmark on Azure Premium SSD v2 (80k '
                     'IOPS, 1200 MBps). Also --pgsql-azure-disk.')
flags.DEFINE_boolean('cleanup', False,
                     'Reset cluster by removing stale PVCs and pods (keeps '
                     'ACStor and storage classes).')
flags.DEFINE_boolean('force_new_cluster', False,
                     'Force creation of a new AKS cluster (ignores an '
                     'existing cluster). Also --force-new-cluster.')

FLAGS = flags.FLAGS

TOOL_NAME = 'acstorbench'

# Mode of each mode flag, in the order they are listed in the usage.
MODE_FLAGS = (
    ('iops', benchmark_spec_lib.IOPS),
    ('bandwidth', benchmark_spec_lib.BANDWIDTH),
    ('pgsql', benchmark_spec_lib.PGSQL),
    ('pgsql_azure_disk', benchmark_spec_lib.PGSQL_AZURE_DISK),
    ('cleanup', benchmark_spec_lib.CLEANUP),
)

USAGE = """\
Azure Container Storage Test Automation

Usage: acstorbench [OPTIONS]

OPTIONS:
    --iops                Run IOPS test mode (4k block size)
    --bandwidth           Run bandwidth test mode (128k block size)
    --pgsql               Run PostgreSQL benchmark on local NVMe + Azure Container Storage
    --pgsql-azure-disk    Run PostgreSQL benchmark on Azure Premium SSD v2 (80k IOPS, 1200 MBps)
    --cleanup             Reset cluster by removing stale PVCs and pods (keeps ACStor and storage classes)
    --force-new-cluster   Force creation of new AKS cluster (ignores existing cluster)
    --help, -h            Show this help message

NOTES:
    - If no option is provided, this help message is displayed
    - An existing AKS cluster with Azure Container Storage is reused
    - Cleanup mode preserves ACStor components and storage classes
    - Result logs are written to --results_dir, manifests to --manifest_dir
"""


def SelectedModes():
  return [mode for flag_name, mode in MODE_FLAGS if FLAGS[flag_name].value]


def MakeBenchmarkSpec(mode):
  if mode in benchmark_spec_lib.FIO_MODES:
    return benchmark_spec_lib.ForMode(mode, duration=FLAGS.fio_runtime)
  return benchmark_spec_lib.ForMode(
      mode,
      duration=FLAGS.pgbench_seconds_per_test,
      clients=FLAGS.pgbench_clients,
      scale=FLAGS.pgbench_scale_factor,
      warmup=FLAGS.pgbench_warmup_seconds)


def EnsureCluster(force_new_cluster):
  """Reuses the current cluster when possible, else provisions a new one.

  Returns:
    The ClusterHandle of a new cluster, None when the current one is reused.

  Raises:
    errors.Setup.NotLoggedInError: if provisioning is needed without az login.
    errors.Resource.CreationError: if provisioning failed.
  """
  if not force_new_cluster and cluster_locator.FindReusableCluster():
    logging.info('Using existing cluster.')
    return None
  if force_new_cluster:
    logging.info('Forcing creation of new AKS cluster...')
  else:
    logging.info('No existing AKS cluster with Azure Container Storage found. '
                 'Creating new cluster...')
  preflight.CheckAzureLogin()
  handle = aks_cluster.ClusterHandle.FromFlags()
  aks_cluster.AksCluster(handle).Create()
  return handle


def RunMode(mode):
  """Runs the job of mode on the current cluster.

  Returns:
    Paths of the written result logs.
  """
  if mode == benchmark_spec_lib.CLEANUP:
    cluster_cleanup.CleanupCluster()
    return []
  spec = MakeBenchmarkSpec(mode)
  if spec.is_fio:
    return [fio_benchmark.RunBenchmark(spec)]
  return pgbench_benchmark.RunBenchmark(spec)


def Main(argv=None):
  """Runs the automation and returns the process exit code."""
  argv = sys.argv if argv is None else argv
  log_util.ConfigureBasicLogging()
  try:
    positional = flag_alias.ParseArgs(argv)
  except flags.Error as e:
    print('Error: %s\n' % e)
    print(USAGE)
    return 1
  if positional:
    print('Error: Unknown argument: %s\n' % positional[0])
    print(USAGE)
    return 1
  if FLAGS.show_help:
    print(USAGE)
    return 0
  modes = SelectedModes()
  if not modes:
    print(USAGE)
    return 0
  if len(modes) > 1:
    print('Error: Multiple modes specified: %s' % ', '.join(modes))
    return 1
  mode = modes[0]
  log_util.ConfigureLoggingFromFlags(TOOL_NAME)

  try:
    if mode == benchmark_spec_lib.CLEANUP:
      preflight.Run(need_azure=False)
    else:
      preflight.Run(need_login=False)
      EnsureCluster(FLAGS.force_new_cluster)
    paths = RunMode(mode)
  except errors.Resource.CreationError as e:
    logging.error('Cluster provisioning failed: %s', e)
    return 1
  except errors.Benchmarks.RunError as e:
    logging.error('Benchmark %s failed: %s', mode, e)
    return 1
  except errors.Error as e:
    logging.error(str(e))
    return 1
  for path in paths:
    logging.info('Results saved to: %s', path)
  return 0


def main():
  sys.exit(Main())

