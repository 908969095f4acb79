"""Universe configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Universe settings loaded from environment variables."""

    # External tools
    switch_binary: str = "vde_switch"
    qemu_binary: str = "qemu-system-x86_64"  # Used by VM management, checked upfront
    qemu_img_binary: str = "qemu-img"

    # Virtual switch
    switch_socket_name: str = "switch"
    switch_socket_mode: str = "0600"  # Owner-only control socket

    # Workspace
    temp_root: str = ""  # Platform temp area if empty
    temp_prefix: str = "virtuakube"

    # Allocators
    port_base: int = 50000
    ipv4_seed: str = "172.20.0.1"
    ipv6_seed: str = "fd00::1"

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    class Config:
        env_prefix = "VIRTUAKUBE_"

    @property
    def required_tools(self) -> list[str]:
        """Executables that must be on PATH before a universe is created."""
        return [self.switch_binary, self.qemu_binary, self.qemu_img_binary]


settings = Settings()
