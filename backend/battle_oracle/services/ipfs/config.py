from pydantic import BaseModel


class IPFSConfig(BaseModel):
    """Configuration for IPFS HTTP API client."""

    api_url: str = "https://ipfs.infura.io:5001"
    timeout_seconds: float = 60.0
    pin: bool = True
    upload_filename: str = "snapshot.json"
