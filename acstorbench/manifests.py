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
"""Typed specs of the Kubernetes objects acstorbench creates.

Each spec names the jinja2 template under acstorbench/data it is rendered
through. Rendering fails on any undefined template variable and the result is
parsed back as YAML before it is handed to kubectl.
"""

import dataclasses
from typing import Any, Dict, List

import jinja2
import yaml

from acstorbench import errors

RECLAIM_POLICIES = ('Delete', 'Retain')
VOLUME_BINDING_MODES = ('Immediate', 'WaitForFirstConsumer')
ACCESS_MODES = ('ReadWriteOnce', 'ReadOnlyMany', 'ReadWriteMany',
                'ReadWriteOncePod')

_ENVIRONMENT = jinja2.Environment(
    loader=jinja2.PackageLoader('acstorbench', 'data'),
    undefined=jinja2.StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True)


def _CheckChoice(option, value, choices):
  if value not in choices:
    raise errors.Config.InvalidValue(
        'Invalid %s "%s", expected one of: %s' %
        (option, value, ', '.join(choices)))


@dataclasses.dataclass(frozen=True)
class StorageClassSpec:
  """A storage.k8s.io/v1 StorageClass."""
  TEMPLATE = 'storage_class.yaml.j2'

  name: str
  provisioner: str
  reclaim_policy: str = 'Delete'
  volume_binding_mode: str = 'WaitForFirstConsumer'
  allow_volume_expansion: bool = True
  parameters: Dict[str, str] = dataclasses.field(default_factory=dict)

  def __post_init__(self):
    _CheckChoice('reclaim policy', self.reclaim_policy, RECLAIM_POLICIES)
    _CheckChoice('volume binding mode', self.volume_binding_mode,
                 VOLUME_BINDING_MODES)


@dataclasses.dataclass(frozen=True)
class StoragePoolSpec:
  """An Azure Container Storage StoragePool.

  disk_type is only meaningful for the ephemeralDisk pool type.
  """
  TEMPLATE = 'storage_pool.yaml.j2'

  name: str
  namespace: str = 'acstor'
  pool_type: str = 'ephemeralDisk'
  disk_type: str = 'nvme'
  capacity: str = ''

  @property
  def storage_class(self):
    """Name of the storage class Azure Container Storage creates for it."""
    return 'acstor-' + self.name


@dataclasses.dataclass(frozen=True)
class FioPodSpec:
  """A long sleeping pod with fio and a generic ephemeral volume."""
  TEMPLATE = 'fio_pod.yaml.j2'

  name: str = 'fiopod'
  image: str = 'openeuler/fio'
  storage_class: str = 'local'
  capacity: str = '10Gi'
  access_mode: str = 'ReadWriteOnce'
  mount_path: str = '/volume'
  node_selector: Dict[str, str] = dataclasses.field(
      default_factory=lambda: {'kubernetes.io/os': 'linux'})
  volume_labels: Dict[str, str] = dataclasses.field(default_factory=dict)

  def __post_init__(self):
    _CheckChoice('access mode', self.access_mode, ACCESS_MODES)


@dataclasses.dataclass(frozen=True)
class CnpgClusterSpec:
  """A CloudNativePG postgresql.cnpg.io/v1 Cluster."""
  TEMPLATE = 'cnpg_cluster.yaml.j2'

  name: str
  storage_class: str
  storage_size: str
  instances: int = 3
  database: str = 'benchmarkdb'
  owner: str = 'postgres'
  inherited_annotations: Dict[str, str] = dataclasses.field(
      default_factory=dict)
  parameters: Dict[str, str] = dataclasses.field(default_factory=dict)

  @property
  def secret_name(self):
    return self.name + '-superuser'

  def __post_init__(self):
    if self.instances < 1:
      raise errors.Config.InvalidValue(
          'A CNPG cluster needs at least one instance, got %s' %
          self.instances)


@dataclasses.dataclass(frozen=True)
class BasicAuthSecretSpec:
  """A kubernetes.io/basic-auth Secret."""
  TEMPLATE = 'cnpg_secret.yaml.j2'

  name: str
  username: str
  password: str


def _TemplateContext(spec) -> Dict[str, Any]:
  context = dataclasses.asdict(spec)
  # Derived names are properties, not fields.
  for attribute in ('secret_name', 'storage_class'):
    if attribute not in context and hasattr(spec, attribute):
      context[attribute] = getattr(spec, attribute)
  return context


def Render(spec) -> str:
  """Renders a spec to YAML text and checks that it parses.

  Args:
    spec: One of the *Spec dataclasses of this module.

  Returns:
    The rendered YAML.

  Raises:
    errors.Config.InvalidValue: if the rendered text is not valid YAML.
  """
  text = _ENVIRONMENT.get_template(spec.TEMPLATE).render(
      _TemplateContext(spec))
  try:
    docs = [doc for doc in yaml.safe_load_all(text) if doc is not None]
  except yaml.YAMLError as e:
    raise errors.Config.InvalidValue(
        'Rendered %s is not valid YAML: %s' % (spec.TEMPLATE, e)) from e
  if not docs:
    raise errors.Config.InvalidValue('Rendered %s is empty.' % spec.TEMPLATE)
  return text


def Load(spec) -> List[Dict[str, Any]]:
  """Renders a spec and returns the parsed documents."""
  return [doc for doc in yaml.safe_load_all(Render(spec)) if doc is not None]


def RenderAll(specs) -> str:
  """Renders several specs into one multi document YAML text."""
  return '---\n'.join(Render(spec) for spec in specs)
