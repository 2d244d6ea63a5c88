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
"""File used for the management of acstorbench flags shared across tools."""

from absl import flags

FLAGS = flags.FLAGS

flags.DEFINE_string('kubectl', 'kubectl', 'Path to kubectl tool')

flags.DEFINE_string('azure_path', 'az', 'Path to the Azure CLI.')

flags.DEFINE_string(
    'kubeconfig',
    None,
    'Path to kubeconfig to be used by kubectl. If unspecified, kubectl uses '
    'its own default (KUBECONFIG or ~/.kube/config).',
)

flags.DEFINE_string(
    'az_location', 'eastus2', 'Azure region for new resource groups.'
)

flags.DEFINE_integer(
    'aks_node_count', 3, 'Number of nodes in a newly created AKS cluster.',
    lower_bound=1,
)

flags.DEFINE_string(
    'aks_node_vm_size',
    'Standard_L16s_v3',
    'VM size of the nodes of a newly created AKS cluster. Ephemeral NVMe '
    'storage requires a storage optimized (L-series) size.',
)

flags.DEFINE_list(
    'aks_zones', ['1', '2', '3'], 'Availability zones for the AKS node pool.'
)

flags.DEFINE_string(
    'resource_group_prefix',
    'rg-acstorbench-',
    'Prefix of resource groups created by acstorbench. The random suffix is '
    'appended to it.',
)

flags.DEFINE_string(
    'acstor_extension_version',
    '2.0.0-preview.2',
    'Version of the Azure Container Storage extension to install.',
)

flags.DEFINE_string(
    'acstor_release_train',
    'staging',
    'Release train of the Azure Container Storage extension.',
)

flags.DEFINE_string(
    'manifest_dir',
    '.',
    'Directory the rendered Kubernetes manifests are written to.',
)

flags.DEFINE_string(
    'results_dir',
    '.',
    'Directory the benchmark result logs and the verbose log are written to.',
)

flags.DEFINE_integer(
    'default_timeout',
    1200,
    'The default timeout for retryable commands in seconds.',
)

flags.DEFINE_boolean(
    'show_help', False, 'Show the usage of the tool and exit. Also --help, -h.'
)
