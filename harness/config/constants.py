"""
Constants used throughout the layering test suite.
"""

from enum import Enum


class ServiceType(str, Enum):
    """
    Service type identifiers for test environments.

    Using str Enum allows direct string comparison while providing
    IDE autocomplete and type safety.

    Usage:
        services = {ServiceType.KubeProxy: proxy}
        proxy = self.get_service(ServiceType.KubeProxy)
    """

    KubeProxy = "kube_proxy"

    def __str__(self) -> str:
        """Allow direct use in f-strings and format operations."""
        return self.value


class ImageBuilderType(str, Enum):
    """Build backends understood by the build controller."""

    OpenshiftImageBuilder = "openshift-image-builder"
    CustomPodBuilder = "custom-pod-builder"

    def __str__(self) -> str:
        return self.value


# Namespace the machine-config operator and its build controller live in.
MCO_NAMESPACE = "openshift-machine-config-operator"

# Pool label that opts a pool into on-cluster builds.
LAYERING_ENABLED_POOL_LABEL = "machineconfiguration.openshift.io/layering-enabled"

# Pool annotation holding the pullspec of the last successfully built image.
POOL_OS_IMAGE_ANNOTATION = "machineconfiguration.openshift.io/os-image-pullspec"

# Node annotations maintained by the machine-config daemon.
NODE_CURRENT_IMAGE_ANNOTATION = "machineconfiguration.openshift.io/currentImage"
NODE_STATE_ANNOTATION = "machineconfiguration.openshift.io/state"
NODE_STATE_DEGRADED = "Degraded"

NODE_ROLE_LABEL_PREFIX = "node-role.kubernetes.io/"

# Build configuration ConfigMap and its recognized keys.
ON_CLUSTER_BUILD_CONFIGMAP = "on-cluster-build-config"
BASE_IMAGE_PULL_SECRET_NAME_KEY = "base-image-pull-secret-name"
FINAL_IMAGE_PUSH_SECRET_NAME_KEY = "final-image-push-secret-name"
FINAL_IMAGE_PULLSPEC_KEY = "final-image-pullspec"
IMAGE_BUILDER_TYPE_KEY = "image-builder-type"

# Pool name -> Dockerfile content.
CUSTOM_DOCKERFILE_CONFIGMAP = "on-cluster-build-custom-dockerfile"

# Cluster-wide pull secret and the copy the build controller is pointed at.
GLOBAL_PULL_SECRET_NAMESPACE = "openshift-config"
GLOBAL_PULL_SECRET_NAME = "pull-secret"
GLOBAL_PULL_SECRET_CLONE_NAME = "global-pull-secret-copy"

BUILDER_PUSH_SECRET_PREFIX = "builder-dockercfg-"

# Fixture names used by the scenarios.
LAYERED_POOL_NAME = "layered"
IMAGESTREAM_NAME = "os-image"
BASE_RENDERED_CONFIG = "00-worker"

COWSAY_DOCKERFILE = """FROM quay.io/centos/centos:stream9 AS centos
RUN dnf install -y epel-release
FROM configs AS final
COPY --from=centos /etc/yum.repos.d /etc/yum.repos.d
COPY --from=centos /etc/pki/rpm-gpg/RPM-GPG-KEY-* /etc/pki/rpm-gpg/
RUN sed -i 's/\\$stream/9-stream/g' /etc/yum.repos.d/centos*.repo && \\
    rpm-ostree install cowsay"""


def role_label(role: str) -> str:
    """Node label that places a node into the pool of the same name."""
    return f"{NODE_ROLE_LABEL_PREFIX}{role}"
