"""
FilePath: /lightning_tooling/main.py
Description:
    Lightning Tooling MCP Server 入口点 (Stdio 模式，供 Cursor/Claude 等调用)
"""

import sys

from src.mcp_server import main as run_mcp_server


def main():
    """主入口"""
    try:
        run_mcp_server()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        # stdout 是 MCP 的通信通道，错误只写 stderr
        sys.stderr.write(f"MCP Server failed: {e}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
