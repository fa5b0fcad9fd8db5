"""Canned sample questions served when live extraction returns nothing.

Every question produced here carries `SAMPLE_SOURCE` so callers can tell it
apart from live data.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Tuple

from .extractor import infer_difficulty, infer_question_type
from .models import CrawledQuestion, now_millis

SAMPLE_SOURCE = "示例数据"
SAMPLE_SUFFIX = f" ({SAMPLE_SOURCE})"
DEFAULT_CATEGORY = "前端开发"

SAMPLE_COMPANIES = ("阿里巴巴", "腾讯", "字节跳动", "百度", "美团", "京东", "网易", "华为")

SAMPLE_QUESTIONS: Dict[str, Tuple[str, ...]] = {
    "前端开发": (
        "JavaScript闭包的概念是什么？请举例说明。",
        "Vue的生命周期有哪些？每个阶段都做什么？",
        "React Hooks相比Class组件有什么优势？",
        "CSS盒模型包括哪些部分？标准模型和IE模型有何区别？",
        "HTTP和HTTPS的区别是什么？",
        "ES6新增了哪些重要特性？",
        "什么是事件冒泡和事件捕获？",
        "如何实现防抖和节流？分别适用于什么场景？",
        "什么是跨域？如何解决跨域问题？",
        "Promise和async/await的区别是什么？",
    ),
    "后端开发": (
        "Spring Boot的自动装配原理是什么？",
        "MySQL索引的类型有哪些？如何优化慢查询？",
        "Redis的数据类型有哪些？各自的应用场景是什么？",
        "JVM内存模型是怎样的？",
        "什么是分布式锁？如何实现？",
        "Spring AOP的实现原理是什么？",
        "数据库事务的ACID特性是什么？",
        "如何设计一个秒杀系统？",
        "RabbitMQ和Kafka的区别是什么？",
        "Docker容器化部署的优势是什么？",
    ),
    "算法岗": (
        "二叉树的前序、中序、后序遍历如何实现？",
        "动态规划的基本思想是什么？",
        "快速排序的时间复杂度是多少？最坏情况如何出现？",
        "如何判断一个链表是否有环？",
        "常见的最短路径算法有哪些？",
        "LRU缓存淘汰算法如何实现？",
        "什么是贪心算法？适用场景有哪些？",
        "如何找出数组中第K大的元素？",
        "常见的字符串匹配算法有哪些？",
        "图的深度优先搜索和广度优先搜索有什么区别？",
    ),
    "测试开发": (
        "软件测试的分类有哪些？",
        "什么是白盒测试和黑盒测试？",
        "自动化测试的优势是什么？",
        "Selenium WebDriver的工作原理是什么？",
        "如何设计高质量的测试用例？",
        "性能测试的关键指标有哪些？",
        "单元测试有哪些最佳实践？",
        "接口测试和UI测试的区别是什么？",
        "测试驱动开发(TDD)是什么？",
        "如何进行代码覆盖率统计？",
    ),
    "运维开发": (
        "Linux常用命令有哪些？",
        "Docker和虚拟机的区别是什么？",
        "Kubernetes的核心概念有哪些？",
        "如何监控服务器的性能指标？",
        "CI/CD流程包含哪些阶段？",
        "负载均衡有哪些实现方式？",
        "数据库备份策略有哪些？",
        "如何排查和处理线上系统故障？",
        "容器编排能带来哪些优势？",
        "微服务架构面临哪些挑战？",
    ),
    "产品经理": (
        "如何进行需求分析？有哪些常用方法？",
        "如何构建用户画像？需要哪些数据？",
        "MVP的概念是什么？如何验证？",
        "如何设计良好的用户体验？",
        "产品生命周期各阶段的重点是什么？",
        "竞品分析应该怎么做？有哪些框架？",
        "如何制定和调整产品路线图？",
        "AB测试的原理和注意事项是什么？",
        "如何用数据驱动产品决策？",
        "如何收集和处理用户反馈？",
    ),
    "数据分析": (
        "SQL的常用函数有哪些？",
        "Python在数据分析中有哪些应用？",
        "什么是数据清洗？常见步骤有哪些？",
        "统计学中有哪些常用的基本概念？",
        "机器学习算法可以分为哪几类？",
        "数据可视化需要遵循哪些原则？",
        "如何设计一次A/B测试？",
        "数据仓库和数据湖的区别是什么？",
        "用户留存率应该如何计算？",
        "什么是特征工程？包括哪些方法？",
    ),
}


def generate_sample_questions(category: str, max_questions: int) -> List[CrawledQuestion]:
    """Return up to `max_questions` canned questions for the category."""
    if max_questions <= 0:
        return []

    texts = SAMPLE_QUESTIONS.get(category) or SAMPLE_QUESTIONS[DEFAULT_CATEGORY]
    stamp = now_millis()
    crawled_at = datetime.now(timezone.utc)

    return [
        CrawledQuestion(
            id=f"sample_{stamp}_{index}",
            question=text,
            category=category,
            difficulty=infer_difficulty(text),
            type=infer_question_type(text),
            source=SAMPLE_SOURCE,
            company=SAMPLE_COMPANIES[index % len(SAMPLE_COMPANIES)],
            tags=[category.lower(), "面试题"],
            url=f"https://example.com/question/{index}",
            crawled_at=crawled_at,
        )
        for index, text in enumerate(texts[:max_questions])
    ]
