# 2025.10.19
# version: 4.1
# 按链分页抓取 Arkham 实体热钱包，最多 3 条链并发，支持代理回退与 CSV 导出

import argparse
import os
import sys

import requests

from arkm_crawler.api import ArkhamClient, Entity
from arkm_crawler.config import (
    ARGS_FILE,
    get_base_path,
    load_settings,
    parse_chains,
    parse_entity_line,
    read_entity_args,
)
from arkm_crawler.errors import ConfigError, CrawlerError
from arkm_crawler.export import count_by_chain, export_filename, write_csv
from arkm_crawler.log import timestamped_print
from arkm_crawler.orchestrator import run_crawl
from arkm_crawler.progress import ConsoleListener
from arkm_crawler.transport import CancelSignal

CHECK_TIMEOUT = 15.0


def build_parser():
    parser = argparse.ArgumentParser(prog="arkm-crawler", description="Arkm Entity Hot Wallet Crawler @ KrsMt.")
    parser.add_argument("--config", help="config.txt 路径（默认与程序同目录）")
    parser.add_argument("--api-key", help="Arkham API Key（覆盖 config.txt / ARKHAM_API_KEY）")
    parser.add_argument("--proxy", help="转发代理地址，直连失败时使用")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("health", help="检查 Arkham API 是否可用")
    subparsers.add_parser("check-key", help="检查 API Key 是否有效")

    search_parser = subparsers.add_parser("search", help="按名称搜索实体")
    search_parser.add_argument("query")

    def add_crawl_options(p):
        p.add_argument("--limit", type=int, help="每页转账条数（1-1000）")
        p.add_argument("--pages", type=int, help="每条链页数（1-10）")
        p.add_argument("--chains", help="逗号分隔的链（默认全部）")
        p.add_argument("--output", help="输出目录（默认 ./result）")

    crawl_parser = subparsers.add_parser("crawl", help="抓取单个实体")
    crawl_parser.add_argument("--entity-id", help="Arkham 实体 ID")
    crawl_parser.add_argument("--entity-name", help="Arkham 实体名称（与地址标注一致，配合 --entity-id 必填）")
    crawl_parser.add_argument("--query", help="先搜索，再抓取搜索结果中的实体")
    crawl_parser.add_argument("--pick", type=int, default=0, help="要抓取的搜索结果序号")
    add_crawl_options(crawl_parser)

    batch_parser = subparsers.add_parser("batch", help="逐行抓取 args.txt 中的 Entity,entity")
    batch_parser.add_argument("--args", dest="args_path", help="args.txt 路径")
    add_crawl_options(batch_parser)

    return parser


def crawl_entity(client, entity, settings, output_dir):
    timestamped_print(f"[{entity.name}] 开始抓取 {len(settings.chains)} 条链")
    rows = run_crawl(
        entity,
        client,
        settings.limit,
        settings.pages,
        chains=settings.chains,
        listener=ConsoleListener(entity.name),
    )
    for chain, count in count_by_chain(rows).items():
        timestamped_print(f"[{entity.name}] {chain} 链共找到 {count} 个热钱包。")
    path = write_csv(os.path.join(output_dir, export_filename(entity.name)), rows)
    timestamped_print(f"[{entity.name}] 共 {len(rows)} 个热钱包，已保存到 {path}")
    return rows


def cmd_health(client, args, settings):
    client.health(signal=CancelSignal(CHECK_TIMEOUT))
    timestamped_print("Health: OK")
    return 0


def cmd_check_key(client, args, settings):
    result = client.check_key(signal=CancelSignal(CHECK_TIMEOUT))
    if result.ok:
        timestamped_print("API Key 有效")
        return 0
    timestamped_print(f"[wrong] API Key 无效：{result.message}")
    return 1


def cmd_search(client, args, settings):
    query = args.query.strip()
    if not query:
        timestamped_print("[wrong] 请输入搜索关键词")
        return 1
    entities = client.search_entities(query)
    if not entities:
        timestamped_print("未找到实体")
        return 0
    timestamped_print(f"找到 {len(entities)} 个实体")
    for idx, ent in enumerate(entities):
        timestamped_print(f"{idx}. {ent.name}（类型：{ent.type or '-'} · ID：{ent.id}）")
    return 0


def cmd_crawl(client, args, settings):
    if args.entity_id:
        if not args.entity_name or not args.entity_name.strip():
            timestamped_print("[wrong] 使用 --entity-id 时必须同时提供 --entity-name")
            return 1
        entity = Entity(id=args.entity_id, name=args.entity_name.strip())
    elif args.query and args.query.strip():
        entities = client.search_entities(args.query.strip())
        if not 0 <= args.pick < len(entities):
            timestamped_print(f"[wrong] '{args.query.strip()}' 没有第 {args.pick} 个实体（共找到 {len(entities)} 个）")
            return 1
        entity = entities[args.pick]
    else:
        timestamped_print("[wrong] 请先选择实体：--entity-id 或 --query")
        return 1
    crawl_entity(client, entity, settings, args.output)
    return 0


def cmd_batch(client, args, settings):
    lines = read_entity_args(args.args_path or os.path.join(get_base_path(), ARGS_FILE))
    for line in lines:
        try:
            name, entity_id = parse_entity_line(line)
        except ConfigError as e:
            timestamped_print(f"[wrong] {e}")
            continue
        crawl_entity(client, Entity(id=entity_id, name=name), settings, args.output)
    return 0


COMMANDS = {
    "health": cmd_health,
    "check-key": cmd_check_key,
    "search": cmd_search,
    "crawl": cmd_crawl,
    "batch": cmd_batch,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
        settings = settings.override(
            api_key=args.api_key,
            proxy=args.proxy,
            limit=getattr(args, "limit", None),
            pages=getattr(args, "pages", None),
            chains=parse_chains(args.chains) if getattr(args, "chains", None) else None,
        )
    except ConfigError as e:
        timestamped_print(f"[wrong] {e}")
        return 1

    if args.command != "health" and not settings.api_key:
        timestamped_print("[wrong] 请输入 API Key：config.txt 中的 api_key= 或 ARKHAM_API_KEY")
        return 1
    if hasattr(args, "output") and not args.output:
        args.output = os.path.join(get_base_path(), "result")

    client = ArkhamClient(settings.api_key, proxy=settings.proxy)
    try:
        return COMMANDS[args.command](client, args, settings)
    except (CrawlerError, requests.RequestException, ValueError) as e:
        timestamped_print(f"[wrong] {args.command} 失败：{e}")
        return 1


if __name__ == "__main__":
    timestamped_print("Arkm Entity Hot Wallet Crawler @ KrsMt.")
    timestamped_print("process start")
    sys.exit(main())
