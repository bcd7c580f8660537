"""
Buildpack configuration — loaded from graalpack.yml.

Every field has a default, so an absent file yields the stock
behaviour: GraalVM CE 21.0.0.2 for Java 11, Maven ``native`` profile,
and the Java functions invoker as the launch command.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_URL_TEMPLATE = (
    "https://github.com/graalvm/graalvm-ce-builds/releases/download/"
    "vm-{version}/graalvm-ce-java{java_version}-{platform}-{version}.tar.gz"
)


class DistributionManifest(BaseModel):
    """The pinned SDK distribution to install into the toolchain layer."""

    version: str = "21.0.0.2"
    java_version: str = "11"
    platform: str = "linux-amd64"
    url_template: str = DEFAULT_URL_TEMPLATE
    url: str | None = None  # explicit override, bypasses the template
    strip_components: int = 1

    @property
    def resolved_url(self) -> str:
        if self.url:
            return self.url
        return self.url_template.format(
            version=self.version,
            java_version=self.java_version,
            platform=self.platform,
        )

    def cache_key(self) -> dict[str, str]:
        """Distribution part of the toolchain layer's cache key."""
        return {"version": self.version, "url": self.resolved_url}


class EnvNames(BaseModel):
    """Names of the environment variables the buildpack reads and writes."""

    function_target: str = "GOOGLE_FUNCTION_TARGET"
    trigger: str = "GOOGLE_JAVA_USE_NATIVE_IMAGE"
    dev_mode: str = "GOOGLE_DEVMODE"
    java_home: str = "JAVA_HOME"


class BuildToolConfig(BaseModel):
    """The build tool that runs native-image compilation, if a project exists."""

    descriptor: str = "pom.xml"
    command: str = "mvn"
    args: list[str] = Field(default_factory=lambda: ["package", "-P", "native"])

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]


class ComponentInstall(BaseModel):
    """The SDK's own component updater, relative to the layer root."""

    updater: str = "bin/gu"
    args: list[str] = Field(default_factory=lambda: ["install", "native-image"])


class BuildpackConfig(BaseModel):
    """Root configuration for the native-image buildpack."""

    layer_name: str = "java-graalvm"
    invoker: str = "./target/com.google.cloud.functions.invoker.runner.invoker"
    command_timeout: int = 3600
    download_timeout: int = 600

    distribution: DistributionManifest = Field(default_factory=DistributionManifest)
    env: EnvNames = Field(default_factory=EnvNames)
    build_tool: BuildToolConfig = Field(default_factory=BuildToolConfig)
    component: ComponentInstall = Field(default_factory=ComponentInstall)
