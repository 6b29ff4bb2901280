"""页面端脚本

页面端只负责采集结构化数据与删除元素，所有分类、打分逻辑都在 Python 侧完成。
脚本均为 ``(arg) => value`` 形式的纯函数，通过 ``PageDriver.evaluate`` 执行。
"""

# 扫描 body 下的全部元素，输出 DocumentSnapshot 所需的字段（snake_case）
SNAPSHOT_JS = r"""
(args) => {
    const maxElements = (args && args.maxElements) || 4000;
    const textLimit = (args && args.textLimit) || 2000;
    const vw = window.innerWidth || document.documentElement.clientWidth || 0;
    const vh = window.innerHeight || document.documentElement.clientHeight || 0;

    const clip = (value, limit) => (value || '').replace(/\s+/g, ' ').trim().slice(0, limit);

    const nthChild = (el) => {
        let index = 1;
        let node = el;
        while ((node = node.previousElementSibling)) index++;
        return index;
    };

    const pathOf = (el) => {
        const parts = [];
        let node = el;
        while (node && node.nodeType === 1 && node !== document.body && node !== document.documentElement) {
            parts.unshift(node.tagName.toLowerCase() + ':nth-child(' + nthChild(node) + ')');
            node = node.parentElement;
        }
        parts.unshift('body');
        return parts.join(' > ');
    };

    const attr = (el, name) => {
        const value = el.getAttribute(name);
        return value === null ? null : value;
    };

    const nodes = Array.from(
        document.querySelectorAll('body *:not(script):not(style):not(noscript):not(template)')
    ).slice(0, maxElements);

    const elements = nodes.map((el, index) => {
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        const parent = el.parentElement;
        const className = typeof el.className === 'string' ? el.className : (el.getAttribute('class') || '');
        const opacity = parseFloat(style.opacity);
        return {
            index: index,
            tag: el.tagName.toLowerCase(),
            id: el.id || null,
            name: attr(el, 'name'),
            class_name: className,
            text: clip(el.innerText || el.textContent, textLimit),
            href: attr(el, 'href'),
            src: el.currentSrc || attr(el, 'src') || attr(el, 'xlink:href'),
            alt: attr(el, 'alt'),
            title: attr(el, 'title'),
            role: attr(el, 'role'),
            aria_label: attr(el, 'aria-label'),
            aria_hidden: attr(el, 'aria-hidden') === 'true',
            hidden: el.hasAttribute('hidden'),
            test_id: attr(el, 'data-testid'),
            display: style.display,
            visibility: style.visibility,
            opacity: isNaN(opacity) ? 1 : opacity,
            bbox: { x: rect.left, y: rect.top, width: rect.width, height: rect.height },
            nth_child: nthChild(el),
            parent_id: parent && parent !== document.body ? (parent.id || null) : null,
            parent_tag: parent ? parent.tagName.toLowerCase() : null,
            path: pathOf(el),
        };
    });

    const og = document.querySelector('meta[property="og:image"]');
    return {
        url: location.href,
        title: document.title || '',
        viewport_width: vw,
        viewport_height: vh,
        body_text: document.body ? (document.body.innerText || '') : '',
        og_image: og ? og.getAttribute('content') : null,
        elements: elements,
    };
}
"""

# 删除选择器命中的陷阱元素；只删除本身不可见或命名可疑的元素
REMOVE_TRAPS_JS = r"""
(args) => {
    const selectors = (args && args.selectors) || [];
    const offscreen = (args && args.offscreen) || 2000;
    let suspicious = null;
    try {
        suspicious = args && args.pattern ? new RegExp(args.pattern) : null;
    } catch (e) {
        suspicious = null;
    }
    const vw = window.innerWidth || document.documentElement.clientWidth || 0;

    const isHidden = (el) => {
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        const opacity = parseFloat(style.opacity);
        return rect.width * rect.height === 0
            || style.display === 'none'
            || style.visibility === 'hidden'
            || (!isNaN(opacity) && opacity < 0.01)
            || el.hasAttribute('hidden')
            || el.getAttribute('aria-hidden') === 'true'
            || rect.left < -offscreen
            || rect.top < -offscreen
            || rect.left > vw + offscreen;
    };

    const isSuspicious = (el) => {
        if (!suspicious) return false;
        const className = typeof el.className === 'string' ? el.className : (el.getAttribute('class') || '');
        return [el.id || '', el.getAttribute('name') || '', className].some((v) => suspicious.test(v));
    };

    let removed = 0;
    for (const selector of selectors) {
        let matches = [];
        try {
            matches = Array.from(document.querySelectorAll(selector));
        } catch (e) {
            continue;
        }
        for (const el of matches) {
            if (!el.isConnected) continue;
            if (isHidden(el) || isSuspicious(el)) {
                el.remove();
                removed++;
            }
        }
    }
    return removed;
}
"""

# 读取单个元素的取值相关信息（参数为元素句柄）
ELEMENT_INFO_JS = r"""
(el) => {
    if (!el || !el.isConnected) return null;
    const rect = el.getBoundingClientRect();
    return {
        tag: el.tagName.toLowerCase(),
        text: (el.innerText || el.textContent || '').trim(),
        href: el.getAttribute('href'),
        src: el.currentSrc || el.getAttribute('src') || el.getAttribute('xlink:href'),
        width: rect.width,
        height: rect.height,
    };
}
"""
