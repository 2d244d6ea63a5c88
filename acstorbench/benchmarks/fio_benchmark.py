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
"""Runs fio against an ephemeral volume of the selected storage class.

The iops mode uses a 4k block size, the bandwidth mode 128k. The pod is left
running afterwards so that the volume can be inspected.
"""

import logging

from acstorbench import benchmark_spec as benchmark_spec_lib
from acstorbench import errors
from acstorbench import fio
from acstorbench import manifests
from acstorbench import results
from acstorbench import storage

BENCHMARK_NAME = 'fio'

# Margin on top of ramp time and runtime before kubectl exec is killed.
_EXEC_TIMEOUT_MARGIN = 300

POST_RUN_COMMANDS = (
    'kubectl get pods',
    'kubectl get pvc',
    'kubectl get sc',
)


def Prepare(spec: benchmark_spec_lib.BenchmarkSpec) -> fio.FioPod:
  """Applies the storage class and creates a fresh fio pod."""
  storage_class = storage.ApplyStorageClass(spec.backend)
  pod = fio.FioPod(manifests.FioPodSpec(
      name=fio.FIO_POD_NAME,
      image=fio.FLAGS.fio_image,
      storage_class=storage_class))
  pod.Create()
  return pod


def GetMetadata(spec: benchmark_spec_lib.BenchmarkSpec):
  return (
      ('mode', spec.mode),
      ('storage_class', spec.storage_class),
      ('block_size', spec.block_size),
      ('runtime', spec.duration),
      ('ramp_time', fio.FLAGS.fio_ramp_time),
      ('iodepth', fio.FLAGS.fio_iodepth),
      ('numjobs', fio.FLAGS.fio_numjobs),
      ('ioengine', fio.FLAGS.fio_ioengine),
      ('rw', fio.FLAGS.fio_rw),
  )


def Run(spec: benchmark_spec_lib.BenchmarkSpec, pod: fio.FioPod) -> str:
  """Runs fio in the pod and writes the result log.

  Returns:
    Path of the written result log.

  Raises:
    errors.Benchmarks.RunError: if fio failed. No result log is written.
  """
  logging.info('Running fio benchmark test with block size: %s',
               spec.block_size)
  fio_cmd = fio.FioCommand(spec.block_size, runtime=spec.duration)
  output = pod.RunFio(
      fio_cmd,
      timeout=spec.duration + fio.FLAGS.fio_ramp_time + _EXEC_TIMEOUT_MARGIN)
  logging.info('fio output:\n%s', output)
  summary_lines = tuple(fio.ExtractSummaryLines(output))
  if not summary_lines:
    raise errors.Benchmarks.RunError(
        'fio output has no IOPS, bandwidth or latency lines.')
  metadata = GetMetadata(spec)
  result_log = results.ResultLog(
      tool=results.FIO_TOOL,
      label=spec.mode,
      timestamp=results.FormatTimestamp(),
      summary_lines=summary_lines,
      samples=tuple(fio.ParseFioOutput(output, dict(metadata))),
      metadata=metadata)
  path = result_log.Write()
  logging.info('Fio test completed successfully!')
  logging.info('To interact with your cluster:\n  %s',
               '\n  '.join(POST_RUN_COMMANDS))
  return path


def RunBenchmark(spec: benchmark_spec_lib.BenchmarkSpec) -> str:
  """Prepares the pod and runs fio once; returns the result log path."""
  pod = Prepare(spec)
  return Run(spec, pod)
