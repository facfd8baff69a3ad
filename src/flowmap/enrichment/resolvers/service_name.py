"""Service and organization names from reverse DNS hostnames.

Maps well-known provider domains to a display label; anything else is
labeled after its registered domain.
"""

# First match wins, so more specific patterns must come before broader
# ones ("netflix.com" before "x.com").
SERVICE_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Google", ("google.com", "googleapis.com", "googleusercontent.com", "gstatic.com", "youtube.com", "ytimg.com", "1e100.net")),
    ("Amazon/AWS", ("amazon.com", "amazonaws.com", "awsstatic.com", "cloudfront.net")),
    ("Microsoft", ("microsoft.com", "msn.com", "live.com", "outlook.com", "office.com", "azure.com")),
    ("Netflix", ("netflix.com", "nflxvideo.net", "nflximg.net", "nflxext.com")),
    ("Facebook", ("facebook.com", "fbcdn.net", "instagram.com")),
    ("WhatsApp", ("whatsapp.com", "whatsapp.net")),
    ("Apple", ("apple.com", "icloud.com", "mzstatic.com", "applemusic.com")),
    ("Cloudflare", ("cloudflare.com", "cloudflare.net")),
    ("Akamai", ("akamai.net", "akamaiedge.net", "akamaihd.net")),
    ("LinkedIn", ("linkedin.com", "licdn.com")),
    ("Zoom", ("zoom.us", "zoom.com")),
    ("Dropbox", ("dropbox.com", "dropboxapi.com")),
    ("Spotify", ("spotify.com", "scdn.co")),
    ("Adobe", ("adobe.com", "adobedc.net")),
    ("Salesforce", ("salesforce.com", "force.com")),
    ("Oracle", ("oracle.com", "oraclecloud.com")),
    ("IBM", ("ibm.com", "ibmcloud.com")),
    ("GitHub", ("github.com", "githubusercontent.com")),
    ("Reddit", ("reddit.com", "redd.it", "redditmedia.com")),
    ("Wikipedia", ("wikipedia.org", "wikimedia.org")),
    ("Twitch", ("twitch.tv", "ttvnw.net")),
    ("Discord", ("discord.com", "discordapp.com")),
    ("TikTok", ("tiktok.com", "tiktokcdn.com")),
    ("Twitter/X", ("twitter.com", "twimg.com", "x.com")),
    ("Telegram", ("telegram.org", "t.me")),
)


def service_name_for(hostname: str) -> str:
    """Guess the service or organization behind a hostname.

    Args:
        hostname: Reverse DNS name, without trailing dot.

    Returns:
        Label of the first matching provider, else the second-to-last
        label capitalized ("edge1.example.net" -> "Example"), else "".
    """
    hostname = hostname.lower()

    for service, patterns in SERVICE_PATTERNS:
        for pattern in patterns:
            if pattern in hostname:
                return service

    parts = hostname.split(".")
    if len(parts) < 2:
        return ""

    domain = parts[-2]
    if not domain:
        return ""
    return domain[:1].upper() + domain[1:]
